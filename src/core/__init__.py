"""Core domain package for hnchannel.

Core contains reconciliation, expiry, and delivery lifecycle logic without any
Telegram, Hacker News, or storage-specific code, keeping the business logic
portable.
"""
