# server/tests/test_ai_proxy.py
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from fitgenix.errors import ServiceUnavailable
from fitgenix.services.ai_proxy import CredentialPool, GroqProxy, extract_json, repair_json_object
from fitgenix.services.video_search import VideoSearch, PLACEHOLDER_VIDEO_ID


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class ScriptedGroq:
    """Client factory whose behaviour depends on the api key it was built with"""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.used_keys = []

    def __call__(self, api_key):
        def create(**params):
            self.used_keys.append(api_key)
            outcome = self.outcomes[api_key]
            if isinstance(outcome, Exception):
                raise outcome
            return _completion(outcome)

        return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


class TestCredentialPool:
    def test_empty_keys_are_dropped(self):
        pool = CredentialPool(["k1", None, "", "k2"])
        assert len(pool) == 2
        assert pool.current() == (0, "k1")

    def test_at_most_three_keys(self):
        assert len(CredentialPool(["a", "b", "c", "d"])) == 3

    def test_advance_wraps(self):
        pool = CredentialPool(["a", "b"])
        pool.advance(0)
        assert pool.current() == (1, "b")
        pool.advance(1)
        assert pool.current() == (0, "a")

    def test_stale_advance_is_ignored(self):
        pool = CredentialPool(["a", "b", "c"])
        pool.advance(0)
        # another request already moved past key 0
        pool.advance(0)
        assert pool.cursor == 1

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "primary")
        monkeypatch.delenv("GROQ_API_KEY_BACKUP1", raising=False)
        monkeypatch.setenv("GROQ_API_KEY_BACKUP2", "backup2")

        pool = CredentialPool.from_env()

        assert len(pool) == 2
        assert pool.current() == (0, "primary")


class TestGroqProxy:
    @pytest.mark.asyncio
    async def test_failover_to_next_key(self):
        factory = ScriptedGroq({"k1": RuntimeError("rate limited"), "k2": "hello"})
        proxy = GroqProxy(CredentialPool(["k1", "k2"]), client_factory=factory)

        reply = await proxy.ask("system", "hi")

        assert reply == "hello"
        assert factory.used_keys == ["k1", "k2"]
        assert proxy.pool.cursor == 1

    @pytest.mark.asyncio
    async def test_cursor_persists_between_calls(self):
        factory = ScriptedGroq({"k1": RuntimeError("down"), "k2": "ok"})
        proxy = GroqProxy(CredentialPool(["k1", "k2"]), client_factory=factory)

        await proxy.ask("system", "first")
        await proxy.ask("system", "second")

        assert factory.used_keys == ["k1", "k2", "k2"]

    @pytest.mark.asyncio
    async def test_all_keys_failing_raises(self):
        factory = ScriptedGroq({k: RuntimeError("down") for k in ("k1", "k2", "k3")})
        proxy = GroqProxy(CredentialPool(["k1", "k2", "k3"]), client_factory=factory)

        with pytest.raises(ServiceUnavailable):
            await proxy.ask("system", "hi")

        assert factory.used_keys == ["k1", "k2", "k3"]

    @pytest.mark.asyncio
    async def test_no_keys_configured(self):
        proxy = GroqProxy(CredentialPool([]))

        assert proxy.available is False
        with pytest.raises(ServiceUnavailable):
            await proxy.ask("system", "hi")

    @pytest.mark.asyncio
    async def test_messages_and_model_are_forwarded(self):
        create = MagicMock(return_value=_completion("fine"))
        factory = MagicMock()
        factory.return_value.chat.completions.create = create
        proxy = GroqProxy(CredentialPool(["k1"]), model="test-model", client_factory=factory)

        await proxy.ask("be brief", "how many calories in rice?", temperature=0.2)

        factory.assert_called_once_with(api_key="k1")
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "how many calories in rice?"},
        ]


class TestExtractJson:
    def test_array_inside_prose(self):
        text = 'Sure! Here you go:\n[{"name": "Squat", "steps": ["Stand"]}]\nEnjoy.'
        assert extract_json(text, "array") == [{"name": "Squat", "steps": ["Stand"]}]

    def test_object_in_code_fence(self):
        text = '```json\n{"name": "banana", "calories": 105}\n```'
        assert extract_json(text, "object") == {"name": "banana", "calories": 105}

    def test_no_match(self):
        assert extract_json("I cannot help with that.", "array") is None

    def test_wrong_shape(self):
        assert extract_json('{"a": [1, 2]}', "array") is None

    def test_unparsable(self):
        assert extract_json('{"name": "banana", "calories": }', "object") is None


class TestRepairJsonObject:
    def test_truncated_plan_is_closed(self):
        text = (
            '{"monday": {"breakfast": [{"name": "Oats", "calories": 300}], '
            '"lunch": [{"name": "Ri'
        )

        assert repair_json_object(text) == {"monday": {"breakfast": [{"name": "Oats", "calories": 300}]}}

    def test_trailing_garbage_is_cut(self):
        text = '{"tuesday": {"dinner": []}} Let me know if you need {changes}'

        assert repair_json_object(text) == {"tuesday": {"dinner": []}}

    def test_braces_inside_strings_are_ignored(self):
        text = '{"monday": {"snacks": [{"name": "Nuts {salted}", "calories": 180}], "dinner": [{"na'

        assert repair_json_object(text) == {"monday": {"snacks": [{"name": "Nuts {salted}", "calories": 180}]}}

    def test_unrecoverable(self):
        assert repair_json_object('{"monday": "trunc') is None
        assert repair_json_object("no json here") is None
        assert repair_json_object(None) is None


class TestVideoSearch:
    @pytest.mark.asyncio
    async def test_no_api_key_uses_placeholder(self):
        assert await VideoSearch(api_key=None).find_video_id("Squat") == PLACEHOLDER_VIDEO_ID

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_returns_first_result(self, mock_client):
        mock_response = MagicMock()
        mock_response.json.return_value = {"items": [{"id": {"videoId": "abc123"}}]}
        mock_response.raise_for_status.return_value = None
        mock_client.return_value.__aenter__.return_value.get.return_value = mock_response

        result = await VideoSearch(api_key="yt").find_video_id("Deadlift")

        assert result == "abc123"
        params = mock_client.return_value.__aenter__.return_value.get.call_args.kwargs["params"]
        assert params["q"] == "Deadlift gym exercise tutorial"

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_search_error_uses_placeholder(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get.side_effect = RuntimeError("quota exceeded")

        assert await VideoSearch(api_key="yt").find_video_id("Deadlift") == PLACEHOLDER_VIDEO_ID
