# fitgenix/services/video_search.py
import logging
import os
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
PLACEHOLDER_VIDEO_ID = "dQw4w9WgXcQ"


class VideoSearch:
    """Best-effort YouTube lookup for exercise tutorials"""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0):
        self.api_key = api_key
        self.timeout = timeout

    async def find_video_id(self, exercise_name: str) -> str:
        """Return the top tutorial video id, or the placeholder on any failure"""
        if not self.api_key:
            return PLACEHOLDER_VIDEO_ID

        params = {
            "part": "snippet",
            "q": f"{exercise_name} gym exercise tutorial",
            "type": "video",
            "maxResults": 1,
            "key": self.api_key,
            "order": "relevance",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(YOUTUBE_SEARCH_URL, params=params)
                r.raise_for_status()
                data = r.json()
            items = data.get("items") or []
            video_id = items[0].get("id", {}).get("videoId") if items else None
            return video_id or PLACEHOLDER_VIDEO_ID
        except Exception as e:
            logger.error(f"YouTube search failed for {exercise_name}: {e}")
            return PLACEHOLDER_VIDEO_ID


def get_video_search() -> VideoSearch:
    return VideoSearch(api_key=os.getenv("YOUTUBE_API_KEY"))
