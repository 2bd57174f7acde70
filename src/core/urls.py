"""Helpers for the URLs and storage keys used throughout hnchannel."""

from __future__ import annotations

from urllib.parse import urlencode

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_NEWS_BASE = "https://news.ycombinator.com"
TELEGRAM_API_BASE = "https://api.telegram.org"

# Every delivery record lives under this logical root.
RECORD_ROOT = "TopStory"


def record_key(item_id: int) -> str:
    """Return the storage key for an item's delivery record."""

    return f"{RECORD_ROOT}/{int(item_id)}"


def news_url(item_id: int) -> str:
    """Return the Hacker News discussion page for an item."""

    return f"{HN_NEWS_BASE}/item?id={int(item_id)}"


def item_url(item_id: int, api_base: str = HN_API_BASE) -> str:
    return f"{api_base.rstrip('/')}/item/{int(item_id)}.json"


def top_stories_url(limit: int, api_base: str = HN_API_BASE) -> str:
    query = urlencode({"orderBy": '"$key"', "limitToFirst": int(limit)})
    return f"{api_base.rstrip('/')}/topstories.json?{query}"


def telegram_api(bot_token: str, method: str) -> str:
    # The Bot API endpoint is deterministic and derived from the token.
    return f"{TELEGRAM_API_BASE}/bot{bot_token}/{method}"
