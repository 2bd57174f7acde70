from __future__ import annotations

import asyncio
from typing import Optional

from adapters.story_actuator import StoryActuator, ineligible_reason
from core.config import DeliveryConfig
from core.errors import ChatAPIError, FeedError
from core.models import Delivered, DeliveryRecord, Failed, Ineligible, Story


def _story(**overrides) -> Story:
    values = dict(id=101, title="Rust in the kernel", url="https://lwn.net/x", score=120, comments=40)
    values.update(overrides)
    return Story(**values)


class FakeItems:
    def __init__(self, story: Optional[Story] = None, error: Optional[Exception] = None) -> None:
        self.story = story
        self.error = error

    async def item(self, item_id: int) -> Optional[Story]:
        if self.error:
            raise self.error
        return self.story


class FakeNotifier:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.sent: list[tuple[str, list]] = []
        self.edited: list[tuple[int, str]] = []
        self.deleted: list[int] = []

    async def send(self, text: str, buttons: list[tuple[str, str]]) -> int:
        if self.error:
            raise self.error
        self.sent.append((text, buttons))
        return 555

    async def edit(self, message_id: int, text: str, buttons: list[tuple[str, str]]) -> None:
        if self.error:
            raise self.error
        self.edited.append((message_id, text))

    async def delete(self, message_id: int) -> None:
        if self.error:
            raise self.error
        self.deleted.append(message_id)


def _actuator(items: FakeItems, notifier: FakeNotifier) -> StoryActuator:
    return StoryActuator(items, notifier, DeliveryConfig())


def test_send_posts_eligible_story() -> None:
    notifier = FakeNotifier()
    story = _story()

    outcome = asyncio.run(_actuator(FakeItems(story), notifier).send(DeliveryRecord(item_id=101)))

    assert outcome == Delivered(555, story)
    text, buttons = notifier.sent[0]
    assert "<b>Rust in the kernel</b>" in text
    assert buttons[1] == ("Comments: 40+", "https://news.ycombinator.com/item?id=101")


def test_send_below_thresholds_is_ineligible() -> None:
    notifier = FakeNotifier()
    low_score = asyncio.run(
        _actuator(FakeItems(_story(score=49)), notifier).send(DeliveryRecord(item_id=101))
    )
    few_comments = asyncio.run(
        _actuator(FakeItems(_story(comments=4)), notifier).send(DeliveryRecord(item_id=101))
    )
    assert isinstance(low_score, Ineligible)
    assert isinstance(few_comments, Ineligible)
    assert notifier.sent == []


def test_edit_ignores_thresholds_but_not_dead_items() -> None:
    notifier = FakeNotifier()
    record = DeliveryRecord(item_id=101, message_id=77)

    refreshed = asyncio.run(_actuator(FakeItems(_story(score=10)), notifier).edit(record))
    dead = asyncio.run(_actuator(FakeItems(_story(dead=True)), notifier).edit(record))

    assert refreshed == Delivered(77, _story(score=10))
    assert isinstance(dead, Ineligible)
    assert notifier.edited == [(77, "<b>Rust in the kernel</b> https://lwn.net/x")]


def test_missing_item_is_ineligible_and_fetch_error_fails() -> None:
    notifier = FakeNotifier()
    missing = asyncio.run(_actuator(FakeItems(None), notifier).send(DeliveryRecord(item_id=1)))
    broken = asyncio.run(
        _actuator(FakeItems(error=FeedError("HTTP 503")), notifier).send(DeliveryRecord(item_id=1))
    )
    assert missing == Ineligible("item not found")
    assert isinstance(broken, Failed)


def test_chat_errors_become_failed_outcomes() -> None:
    notifier = FakeNotifier(error=ChatAPIError("Bad Request: chat not found"))
    actuator = _actuator(FakeItems(_story()), notifier)

    assert isinstance(asyncio.run(actuator.send(DeliveryRecord(item_id=101))), Failed)
    assert isinstance(asyncio.run(actuator.edit(DeliveryRecord(item_id=101, message_id=3))), Failed)
    assert isinstance(asyncio.run(actuator.delete(DeliveryRecord(item_id=101, message_id=3))), Failed)


def test_delete_without_message_id_skips_the_chat() -> None:
    notifier = FakeNotifier()
    outcome = asyncio.run(_actuator(FakeItems(), notifier).delete(DeliveryRecord(item_id=5)))
    assert outcome == Delivered(0)
    assert notifier.deleted == []


def test_ineligible_reason_rules() -> None:
    config = DeliveryConfig()
    assert ineligible_reason(_story(), config, for_send=True) is None
    assert ineligible_reason(_story(item_type="job"), config, for_send=True) == "item type job"
    assert ineligible_reason(_story(item_type="job"), config, for_send=False) is None
    assert ineligible_reason(_story(deleted=True), config, for_send=False) == "item deleted"
    assert ineligible_reason(_story(score=50, comments=5), config, for_send=True) is None
