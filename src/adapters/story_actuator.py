"""Delivery actuator for Hacker News stories.

Implements the core ActuatorPort: look up the current state of the item,
decide whether it may be posted, and perform one send/edit/delete through a
NotifierPort. Outcomes are returned, never raised.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from adapters.notification_formatting import format_story, story_buttons
from core.config import DeliveryConfig
from core.errors import ChatAPIError, FeedError
from core.models import Delivered, DeliveryOutcome, DeliveryRecord, Failed, Ineligible, Story
from core.ports import ItemSourcePort, NotifierPort

LOGGER = logging.getLogger(__name__)


def ineligible_reason(story: Optional[Story], config: DeliveryConfig, for_send: bool) -> Optional[str]:
    """Return why a story must not be posted, or ``None`` when it may be.

    Dead or deleted items are never posted or refreshed. Thresholds and the
    item type only gate new posts; a story that is already in the channel
    keeps being refreshed until it expires.
    """

    if story is None:
        return "item not found"
    if story.deleted:
        return "item deleted"
    if story.dead:
        return "item dead"
    if not for_send:
        return None
    if story.item_type != "story":
        return f"item type {story.item_type}"
    if story.score < config.score_threshold:
        return f"score {story.score} below {config.score_threshold}"
    if story.comments < config.comments_threshold:
        return f"comments {story.comments} below {config.comments_threshold}"
    return None


class StoryActuator:
    """Posts, refreshes, and removes channel messages for stories."""

    def __init__(
        self,
        items: ItemSourcePort,
        notifier: NotifierPort,
        config: DeliveryConfig,
        formatter: Callable[[Story], str] = format_story,
    ) -> None:
        self._items = items
        self._notifier = notifier
        self._format = formatter
        self._config = config

    async def _load(self, record: DeliveryRecord, for_send: bool) -> Union[Story, DeliveryOutcome]:
        try:
            story = await self._items.item(record.item_id)
        except FeedError as exc:
            return Failed(exc)
        reason = ineligible_reason(story, self._config, for_send)
        if reason:
            return Ineligible(reason)
        return story

    async def send(self, record: DeliveryRecord) -> DeliveryOutcome:
        loaded = await self._load(record, for_send=True)
        if not isinstance(loaded, Story):
            return loaded
        try:
            message_id = await self._notifier.send(self._format(loaded), story_buttons(loaded))
        except ChatAPIError as exc:
            return Failed(exc)
        return Delivered(message_id, loaded)

    async def edit(self, record: DeliveryRecord) -> DeliveryOutcome:
        if not record.message_id:
            return Ineligible("no message to edit")
        loaded = await self._load(record, for_send=False)
        if not isinstance(loaded, Story):
            return loaded
        try:
            await self._notifier.edit(record.message_id, self._format(loaded), story_buttons(loaded))
        except ChatAPIError as exc:
            return Failed(exc)
        return Delivered(record.message_id, loaded)

    async def delete(self, record: DeliveryRecord) -> DeliveryOutcome:
        if not record.message_id:
            # Nothing was ever posted; the record only needs to go.
            LOGGER.debug("Record %s has no message id", record.item_id)
            return Delivered(0)
        try:
            await self._notifier.delete(record.message_id)
        except ChatAPIError as exc:
            return Failed(exc)
        return Delivered(record.message_id)
