"""Adapters implementing the core ports for Hacker News, Telegram, and SQLite."""
