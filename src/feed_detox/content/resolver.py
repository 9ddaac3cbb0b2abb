"""
Content Resolver

Looks up long-form videos for a topic. The YouTube implementation uses
the Data API v3 search endpoint and prefers English videos of 20+
minutes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..config import DetoxConfig
from ..errors import ResolutionFailed

logger = logging.getLogger(__name__)


YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"
MAX_RESULTS = 10


class ContentResolver(ABC):
    """Turns a topic into an ordered list of video ids."""

    @abstractmethod
    async def resolve(self, topic: str) -> list[str]:
        """
        Find videos for a topic.

        Returns:
            Video ids in playback order (may be empty)

        Raises:
            ResolutionFailed: lookup could not be performed
        """

    async def close(self) -> None:
        """Release any held connections."""


class YouTubeResolver(ContentResolver):
    """
    YouTube Data API search.

    The query is widened with "tutorial long form" and filtered to long
    videos so each dwell lands on substantial content.
    """

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the resolver.

        Args:
            api_key: YouTube Data API key
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=YOUTUBE_API_URL,
                timeout=self.timeout,
                transport=self._transport,
            )

    def build_params(self, topic: str) -> dict[str, Any]:
        return {
            "key": self.api_key,
            "part": "snippet",
            "q": f"{topic} tutorial long form",
            "type": "video",
            "maxResults": MAX_RESULTS,
            "videoDuration": "long",
            "relevanceLanguage": "en",
        }

    async def resolve(self, topic: str) -> list[str]:
        if not self.api_key:
            raise ResolutionFailed("ERROR: YOUTUBE_API_KEY is missing. Check your .env file.")

        await self.initialize()

        try:
            response = await self._client.get("/search", params=self.build_params(topic))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[YouTube API] FAILED: {_api_error_message(e.response)}")
            raise ResolutionFailed(
                "Failed to fetch videos from YouTube. Check your API key or quota."
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[YouTube API] FAILED: {e!s}")
            raise ResolutionFailed(
                "Failed to fetch videos from YouTube. Check your API key or quota."
            ) from e

        items = data.get("items", []) if isinstance(data, dict) else []
        video_ids = [
            item["id"]["videoId"]
            for item in items
            if isinstance(item, dict)
            and isinstance(item.get("id"), dict) and item["id"].get("videoId")
        ]

        logger.info(f'[YouTube API] Found {len(video_ids)} long videos for topic "{topic}".')
        return video_ids

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _api_error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"{response.status_code} - {response.text}"


def create_resolver(config: Optional[DetoxConfig] = None) -> YouTubeResolver:
    """
    Factory function to create the YouTube resolver.

    Args:
        config: Service configuration (uses env if None)
    """
    config = config or DetoxConfig.from_env()
    return YouTubeResolver(api_key=config.youtube_api_key)
