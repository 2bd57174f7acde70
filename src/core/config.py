"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

BATCH_SIZE = 30
COMMENTS_THRESHOLD = 5
SCORE_THRESHOLD = 50
RETENTION = timedelta(hours=24)
CALL_TIMEOUT = timedelta(minutes=9)
# A send makes two bounded calls (item fetch, then Telegram); the lease must outlast both.
LEASE_SECONDS = int(2 * CALL_TIMEOUT.total_seconds()) + 120


@dataclass(frozen=True)
class DeliveryConfig:
    """Feed, eligibility, and expiry settings for the core pipeline."""

    batch_size: int = BATCH_SIZE
    score_threshold: int = SCORE_THRESHOLD
    comments_threshold: int = COMMENTS_THRESHOLD
    retention: timedelta = RETENTION


@dataclass(frozen=True)
class QueueConfig:
    """Task queue settings consumed by the worker and queue adapter."""

    lease_seconds: int = LEASE_SECONDS
    max_attempts: int = 5
    concurrency: int = 10
