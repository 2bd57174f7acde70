"""Application entry point for the hnchannel poller."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Awaitable, Callable, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.hacker_news import HackerNewsClient
from adapters.sqlite_storage import SQLiteRecordStore
from adapters.sqlite_task_queue import SQLiteTaskQueue
from adapters.story_actuator import StoryActuator
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramClientNotifier
from client import build_client, start_bot
from core.dispatch import TaskWorker
from core.expirer import Expirer
from core.lifecycle import DeliveryLifecycle
from core.reconciler import Reconciler

NAME = "HNCHANNEL"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    # Bot API URLs embed the token, so it must never reach a log line.
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/hnchannel.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _open_storage() -> tuple[SQLiteRecordStore, SQLiteTaskQueue]:
    store = SQLiteRecordStore(settings.DB_PATH)
    store.init_db()
    queue = SQLiteTaskQueue(settings.DB_PATH, settings.QUEUE)
    queue.init_db()
    return store, queue


def _hacker_news() -> HackerNewsClient:
    return HackerNewsClient(settings.HN_API, timeout=settings.CALL_TIMEOUT_SECONDS)


def _reconciler(store: SQLiteRecordStore, queue: SQLiteTaskQueue) -> Reconciler:
    return Reconciler(
        feed=_hacker_news(),
        store=store,
        queue=queue,
        config=settings.DELIVERY,
        concurrency=settings.QUEUE.concurrency,
    )


def _expirer(store: SQLiteRecordStore, queue: SQLiteTaskQueue) -> Expirer:
    return Expirer(
        store=store,
        queue=queue,
        config=settings.DELIVERY,
        concurrency=settings.QUEUE.concurrency,
    )


async def _build_worker(store: SQLiteRecordStore, queue: SQLiteTaskQueue):
    """Build the task worker; returns (worker, telethon client or None)."""

    load_dotenv()
    client = None
    # Select the notification adapter based on configuration to keep the core
    # lifecycle independent from delivery details.
    if settings.DELIVERY_METHOD == "bot":
        bot_token = os.getenv("BOT_TOKEN")
        if not bot_token:
            raise RuntimeError("BOT_TOKEN is required when delivery.method=bot")
        notifier = TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=settings.CHAT_ID,
            timeout=settings.CALL_TIMEOUT_SECONDS,
        )
    elif settings.DELIVERY_METHOD == "client":
        client = await start_bot(build_client())
        notifier = TelegramClientNotifier(client, settings.CHAT_ID, timeout=settings.CALL_TIMEOUT_SECONDS)
    else:
        raise RuntimeError("delivery.method must be 'bot' or 'client'")
    LOGGER.info("Selected delivery method - %s", settings.DELIVERY_METHOD)

    actuator = StoryActuator(_hacker_news(), notifier, settings.DELIVERY)
    lifecycle = DeliveryLifecycle(store, actuator)
    worker = TaskWorker(queue, lifecycle.handlers(), batch_size=settings.QUEUE.concurrency)
    return worker, client


async def _every(name: str, interval: float, job: Callable[[], Awaitable[object]]) -> None:
    while True:
        try:
            await job()
        except Exception:
            LOGGER.exception("%s loop iteration failed", name)
        await asyncio.sleep(interval)


async def _serve() -> None:
    store, queue = _open_storage()
    worker, client = await _build_worker(store, queue)
    reconciler = _reconciler(store, queue)
    expirer = _expirer(store, queue)

    LOGGER.info(
        "Polling every %ss, cleaning up every %ss, working every %ss",
        settings.POLL_INTERVAL,
        settings.CLEANUP_INTERVAL,
        settings.WORKER_INTERVAL,
    )
    try:
        await asyncio.gather(
            _every("poll", settings.POLL_INTERVAL, reconciler.tick),
            _every("cleanup", settings.CLEANUP_INTERVAL, expirer.tick),
            _every("worker", settings.WORKER_INTERVAL, worker.drain),
        )
    finally:
        if client is not None:
            await client.disconnect()


async def _poll_once() -> None:
    store, queue = _open_storage()
    summary = await _reconciler(store, queue).tick()
    LOGGER.info("Poll: %s", summary)


async def _cleanup_once() -> None:
    store, queue = _open_storage()
    summary = await _expirer(store, queue).tick()
    LOGGER.info("Cleanup: %s", summary)


async def _work_once() -> None:
    store, queue = _open_storage()
    worker, client = await _build_worker(store, queue)
    try:
        count = await worker.drain()
    finally:
        if client is not None:
            await client.disconnect()
    LOGGER.info("Worker ran %s tasks", count)


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting hnchannel")
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        LOGGER.info("Stopped")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="hnchannel")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Poll, clean up, and deliver on a schedule")
    subparsers.add_parser("poll", help="Run one poll tick (enqueue send/edit tasks)")
    subparsers.add_parser("cleanup", help="Run one cleanup tick (enqueue delete tasks)")
    subparsers.add_parser("work", help="Deliver every task that is currently due")
    subparsers.add_parser("init-db", help="Create the SQLite tables")

    args = parser.parse_args(argv)
    if args.command in {"poll", "cleanup", "work", "init-db"}:
        _configure_logging()
    if args.command == "poll":
        asyncio.run(_poll_once())
        return
    if args.command == "cleanup":
        asyncio.run(_cleanup_once())
        return
    if args.command == "work":
        asyncio.run(_work_once())
        return
    if args.command == "init-db":
        _open_storage()
        LOGGER.info("Database ready at %s", settings.DB_PATH)
        return
    _run()


if __name__ == "__main__":
    main()
