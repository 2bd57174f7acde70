"""Static configuration for hnchannel.

All user-editable settings (feed, thresholds, delivery, schedule) live in a
single JSON file for quick edits without touching Python. Secrets come from
the environment (see .env.example).
"""

import json
import os
from datetime import timedelta

from core.config import (
    BATCH_SIZE,
    CALL_TIMEOUT,
    COMMENTS_THRESHOLD,
    RETENTION,
    SCORE_THRESHOLD,
    DeliveryConfig,
    QueueConfig,
)
from core.urls import HN_API_BASE

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Settings are loaded from config.json to keep everything in one place.
CONFIG_PATH = os.environ.get("HNCHANNEL_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Feed settings: where top stories come from and how many to track.
_feed = _CONFIG.get("feed", {})
HN_API = _feed.get("api_base", HN_API_BASE)
BATCH = int(_feed.get("batch_size", BATCH_SIZE))

# Eligibility thresholds for posting a story to the channel.
_eligibility = _CONFIG.get("eligibility", {})
SCORE_MIN = int(_eligibility.get("score_threshold", SCORE_THRESHOLD))
COMMENTS_MIN = int(_eligibility.get("comments_threshold", COMMENTS_THRESHOLD))

# Posts older than this are removed from the channel by the cleanup tick.
RETENTION_HOURS = float(_CONFIG.get("retention_hours", RETENTION.total_seconds() / 3600))

# Upper bound for every outbound HTTP/Telegram call.
CALL_TIMEOUT_SECONDS = float(_CONFIG.get("call_timeout_seconds", CALL_TIMEOUT.total_seconds()))

# Delivery method switches adapters without changing core logic.
# - "bot": Telegram Bot HTTP API (BOT_TOKEN)
# - "client": Telethon logged in as the bot (API_ID, API_HASH, BOT_TOKEN)
_delivery = _CONFIG.get("delivery", {})
DELIVERY_METHOD = _delivery.get("method", "bot")
CHAT_ID = str(_delivery.get("chat_id", "@yahnc"))

# Where to store the SQLite database (records and task queue).
_database = _CONFIG.get("database", {})
DB_PATH = _database.get("path", "hnchannel.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

_queue = _CONFIG.get("queue", {})
QUEUE = QueueConfig(
    lease_seconds=int(_queue.get("lease_seconds", 2 * CALL_TIMEOUT_SECONDS + 120)),
    max_attempts=int(_queue.get("max_attempts", 5)),
    concurrency=int(_queue.get("concurrency", 10)),
)

# Periodic loop intervals for `hnchannel run`.
_schedule = _CONFIG.get("schedule", {})
POLL_INTERVAL = float(_schedule.get("poll_interval_seconds", 300))
CLEANUP_INTERVAL = float(_schedule.get("cleanup_interval_seconds", 3600))
WORKER_INTERVAL = float(_schedule.get("worker_interval_seconds", 5))

DELIVERY = DeliveryConfig(
    batch_size=BATCH,
    score_threshold=SCORE_MIN,
    comments_threshold=COMMENTS_MIN,
    retention=timedelta(hours=RETENTION_HOURS),
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
