from __future__ import annotations

from core.urls import item_url, news_url, record_key, telegram_api, top_stories_url


def test_record_keys_share_one_root() -> None:
    assert record_key(101) == "TopStory/101"
    assert record_key(101) != record_key(1010)


def test_hacker_news_urls() -> None:
    assert news_url(7) == "https://news.ycombinator.com/item?id=7"
    assert item_url(7) == "https://hacker-news.firebaseio.com/v0/item/7.json"
    assert item_url(7, "https://hn.test/v0/") == "https://hn.test/v0/item/7.json"
    assert top_stories_url(30) == (
        "https://hacker-news.firebaseio.com/v0/topstories.json"
        "?orderBy=%22%24key%22&limitToFirst=30"
    )


def test_telegram_api_url() -> None:
    assert telegram_api("123:abc", "deleteMessage") == "https://api.telegram.org/bot123:abc/deleteMessage"
