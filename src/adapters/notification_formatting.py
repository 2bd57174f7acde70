"""Shared message formatting helpers.

Keeping formatting here prevents drift between messenger adapters and keeps
channel posts consistent regardless of delivery method.
"""

from __future__ import annotations

import html

from core.models import Story
from core.urls import news_url


def format_story(story: Story) -> str:
    """Return the HTML post body: bold title followed by the story link."""

    return f"<b>{html.escape(story.title)}</b> {html.escape(story.link)}"


def story_buttons(story: Story) -> list[tuple[str, str]]:
    """Return the (label, url) pairs shown under a post.

    Counts carry a trailing "+" because the post is only refreshed on the
    next poll and the real numbers keep growing in between.
    """

    return [
        (f"Score: {story.score}+", story.link),
        (f"Comments: {story.comments}+", news_url(story.id)),
    ]
