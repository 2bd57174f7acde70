"""Hacker News Firebase API adapter.

Implements both the FeedPort (top story ids) and the ItemSourcePort (item
detail) over plain HTTP.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import socket
import urllib.error
import urllib.request
from typing import Any, Optional

from core.config import CALL_TIMEOUT
from core.errors import FeedError
from core.models import Story
from core.urls import HN_API_BASE, item_url, top_stories_url


class HackerNewsClient:
    """Reads the top stories list and individual items."""

    def __init__(self, api_base: str = HN_API_BASE, timeout: float = CALL_TIMEOUT.total_seconds()) -> None:
        self._api_base = api_base
        self._timeout = timeout

    def _get_json(self, url: str) -> Any:
        try:
            request = urllib.request.Request(url, method="GET")
            request.add_header("Accept", "application/json")
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            raise FeedError(f"HTTP {e.code} from {url}") from e
        except (urllib.error.URLError, http.client.HTTPException, socket.timeout, OSError, ValueError) as e:
            raise FeedError(f"Request to {url} failed: {e}") from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FeedError(f"Malformed JSON from {url}") from e

    async def top_stories(self, limit: int) -> list[int]:
        """Return up to ``limit`` top story ids in feed order."""

        url = top_stories_url(limit, self._api_base)
        data = await asyncio.to_thread(self._get_json, url)
        if not isinstance(data, list) or not all(_is_id(value) for value in data):
            raise FeedError("Expected a JSON array of integer ids from the top stories feed")
        return data[:limit]

    async def item(self, item_id: int) -> Optional[Story]:
        """Return the item, or ``None`` when the API has nothing for this id."""

        data = await asyncio.to_thread(self._get_json, item_url(item_id, self._api_base))
        if data is None:
            return None
        if not isinstance(data, dict):
            raise FeedError(f"Expected a JSON object for item {item_id}")
        try:
            return parse_item(data)
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f"Malformed item payload for {item_id}") from e


def _is_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id.
    return isinstance(value, int) and not isinstance(value, bool)


def parse_item(data: dict) -> Story:
    """Build a Story from a Hacker News item payload."""

    return Story(
        id=int(data["id"]),
        title=str(data.get("title") or ""),
        url=data.get("url") or None,
        score=int(data.get("score") or 0),
        comments=int(data.get("descendants") or 0),
        item_type=str(data.get("type") or "story"),
        dead=bool(data.get("dead", False)),
        deleted=bool(data.get("deleted", False)),
    )
