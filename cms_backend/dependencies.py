"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from cms_backend.config import get_settings
from cms_backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from cms_backend.env import EnvConfig, get_env
from cms_backend.mailer import InMemoryMailer, Mailer, SmtpMailer
from cms_backend.realtime import ChangeFeed, InMemoryChangeFeed, RedisChangeFeed

_db_client: DbClient | None = None
_change_feed: ChangeFeed | None = None
_in_memory_mailer: InMemoryMailer | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so content persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_change_feed() -> ChangeFeed:
    """
    Return a singleton feed used to announce content changes.
    """
    global _change_feed
    if _change_feed:
        return _change_feed

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _change_feed = RedisChangeFeed(
            url=settings.redis_url,
            channel_prefix=settings.redis_channel_prefix,
        )
    else:
        _change_feed = InMemoryChangeFeed()
    return _change_feed


def get_env_config() -> EnvConfig:
    return get_env()


def get_mailer() -> Mailer | None:
    """
    Return the mail transport, or None when email is not configured.
    """
    global _in_memory_mailer
    settings = get_settings()
    if settings.use_in_memory_backends:
        if _in_memory_mailer is None:
            _in_memory_mailer = InMemoryMailer()
        return _in_memory_mailer

    env = get_env()
    if env.email is None:
        return None
    return SmtpMailer(env.email)


def reset_dependencies() -> None:
    """Drop cached singletons so the next request rebuilds them (tests, scripts)."""
    global _db_client, _change_feed, _in_memory_mailer
    _db_client = None
    _change_feed = None
    _in_memory_mailer = None
    get_env.cache_clear()
    get_settings.cache_clear()
