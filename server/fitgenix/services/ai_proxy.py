# fitgenix/services/ai_proxy.py
"""
Groq completion proxy with multi-key failover, plus the JSON extraction
helpers used by every generation endpoint.
"""

import asyncio
import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from groq import Groq

from fitgenix.errors import ServiceUnavailable

load_dotenv()

logger = logging.getLogger(__name__)

GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
MAX_CREDENTIALS = 3


class CredentialPool:
    """Ordered API keys with a lock-guarded cursor pointing at the active key."""

    def __init__(self, keys: List[Optional[str]]):
        self._keys = [k for k in keys if k][:MAX_CREDENTIALS]
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "CredentialPool":
        return cls([
            os.getenv("GROQ_API_KEY"),
            os.getenv("GROQ_API_KEY_BACKUP1"),
            os.getenv("GROQ_API_KEY_BACKUP2"),
        ])

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def current(self) -> tuple[int, str]:
        with self._lock:
            if not self._keys:
                raise ServiceUnavailable("No Groq API keys configured.")
            return self._cursor, self._keys[self._cursor]

    def advance(self, failed_index: int) -> None:
        # only move on if nobody else already rotated past the failed key
        with self._lock:
            if self._keys and self._cursor == failed_index:
                self._cursor = (self._cursor + 1) % len(self._keys)


class GroqProxy:
    """Send chat messages to Groq, rotating credentials on failure."""

    def __init__(self, pool: CredentialPool, model: str = GROQ_MODEL, client_factory=Groq):
        self.pool = pool
        self.model = model
        self._client_factory = client_factory

    @property
    def available(self) -> bool:
        return len(self.pool) > 0

    def _create(self, api_key: str, messages: List[Dict[str, str]], **params):
        client = self._client_factory(api_key=api_key)
        return client.chat.completions.create(model=self.model, messages=messages, **params)

    async def complete(self, messages: List[Dict[str, str]], **params) -> str:
        """Return the reply text, trying each configured key at most once."""
        if not self.available:
            raise ServiceUnavailable("No Groq API keys configured.")

        last_error: Optional[Exception] = None
        for _ in range(len(self.pool)):
            index, api_key = self.pool.current()
            try:
                logger.info(f"Using Groq key index: {index}")
                response = await asyncio.to_thread(self._create, api_key, messages, **params)
                return response.choices[0].message.content or ""
            except Exception as e:
                logger.warning(f"Groq error (key index {index}): {e}")
                last_error = e
                self.pool.advance(index)

        logger.error(f"All Groq API keys failed. Last error: {last_error}")
        raise ServiceUnavailable()

    async def ask(self, system: str, user: str, **params) -> str:
        return await self.complete(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            **params,
        )


_default_proxy: Optional[GroqProxy] = None


def get_ai_proxy() -> GroqProxy:
    """FastAPI dependency; the pool is built once from the environment"""
    global _default_proxy
    if _default_proxy is None:
        _default_proxy = GroqProxy(CredentialPool.from_env())
        logger.info(f"Groq proxy initialized with {len(_default_proxy.pool)} key(s), model {GROQ_MODEL}")
    return _default_proxy


# ---------- JSON extraction ----------
_BRACKETS = {"array": ("[", "]", list), "object": ("{", "}", dict)}


def extract_json_text(text: str, shape: str) -> Optional[str]:
    """Greedy slice from the first opening bracket to the last closing one"""
    opener, closer, _ = _BRACKETS[shape]
    if not text:
        return None
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end < start:
        # an opener with no closer is still returned so repair can look at it
        return text[start:] if start != -1 else None
    return text[start:end + 1]


def extract_json(text: str, shape: str) -> Optional[Any]:
    """Parse the first array/object in a model reply, or None"""
    candidate = extract_json_text(text, shape)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parse failed: {e}")
        return None
    _, _, expected = _BRACKETS[shape]
    return parsed if isinstance(parsed, expected) else None


def repair_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Single bounded repair for truncated model output.

    Cut the text after the last complete value that closed inside an
    object, close whatever brackets are still open, and reparse.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None
    text = text[start:]

    stack: List[str] = []
    in_string = False
    escaped = False
    cut = -1
    cut_stack: List[str] = []
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            if ch == "}":
                cut = i
                cut_stack = list(stack)
            if not stack:
                break

    if cut == -1:
        return None
    repaired = text[:cut + 1].rstrip().rstrip(",")
    closers = {"{": "}", "[": "]"}
    repaired += "".join(closers[c] for c in reversed(cut_stack))
    try:
        parsed = json.loads(repaired)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON repair failed: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None
