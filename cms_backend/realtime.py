"""
Live-update feed for content table changes.

Supports an in-memory fallback for tests/local runs and a Redis pub/sub
implementation so clients in other processes hear about edits.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

from cms_backend.db import HOME_TABLE

logger = logging.getLogger(__name__)

ChangeCallback = Callable[["ChangeEvent"], None]


@dataclass
class ChangeEvent:
    event: str
    page_name: str
    record: dict = field(default_factory=dict)
    schema: str = "public"
    table: str = HOME_TABLE
    commit_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ChangeEvent":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        payload = json.loads(raw)
        return cls(
            event=payload["event"],
            page_name=payload["page_name"],
            record=payload.get("record") or {},
            schema=payload.get("schema", "public"),
            table=payload.get("table", HOME_TABLE),
            commit_timestamp=payload.get("commit_timestamp", ""),
        )


class Subscription(Protocol):
    def close(self) -> None:
        ...


class ChangeFeed(Protocol):
    """Minimal pub/sub interface for content change notifications."""

    def publish(self, event: ChangeEvent) -> None:
        ...

    def subscribe(
        self, callback: ChangeCallback, *, page_name: Optional[str] = None
    ) -> Subscription:
        ...


def _deliver(callback: ChangeCallback, event: ChangeEvent, page_name: Optional[str]) -> None:
    if page_name is not None and event.page_name != page_name:
        return
    try:
        callback(event)
    except Exception:
        logger.exception("Change subscriber failed for page %s", event.page_name)


@dataclass(eq=False)
class InMemorySubscription:
    feed: "InMemoryChangeFeed"
    callback: ChangeCallback
    page_name: Optional[str] = None

    def close(self) -> None:
        self.feed.remove(self)


@dataclass
class InMemoryChangeFeed:
    """Synchronous in-process feed for testing/dev."""

    subscriptions: list[InMemorySubscription] = field(default_factory=list)
    published: list[ChangeEvent] = field(default_factory=list)

    def publish(self, event: ChangeEvent) -> None:
        self.published.append(event)
        for subscription in list(self.subscriptions):
            _deliver(subscription.callback, event, subscription.page_name)

    def subscribe(
        self, callback: ChangeCallback, *, page_name: Optional[str] = None
    ) -> InMemorySubscription:
        subscription = InMemorySubscription(self, callback, page_name)
        self.subscriptions.append(subscription)
        return subscription

    def remove(self, subscription: InMemorySubscription) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)


@dataclass
class RedisSubscription:
    pubsub: "redis.client.PubSub"
    thread: Optional["redis.client.PubSubWorkerThread"] = None

    def close(self) -> None:
        if self.thread is not None:
            self.thread.stop()
            self.thread = None
        self.pubsub.close()


@dataclass
class RedisChangeFeed:
    """Redis-backed feed using one pub/sub channel per table."""

    url: str
    channel_prefix: str = "cms:changes"
    poll_interval: float = 0.2

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    @property
    def channel(self) -> str:
        return f"{self.channel_prefix}:{HOME_TABLE}"

    def publish(self, event: ChangeEvent) -> None:
        try:
            self.client.publish(self.channel, event.to_json())
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; reconnect once and retry.
            self.client = redis.Redis.from_url(self.url)
            self.client.publish(self.channel, event.to_json())

    def subscribe(
        self, callback: ChangeCallback, *, page_name: Optional[str] = None
    ) -> RedisSubscription:
        def handle(message: dict) -> None:
            try:
                event = ChangeEvent.from_json(message["data"])
            except (KeyError, ValueError):
                logger.warning("Ignoring malformed change message on %s", self.channel)
                return
            _deliver(callback, event, page_name)

        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{self.channel: handle})
        thread = pubsub.run_in_thread(sleep_time=self.poll_interval, daemon=True)
        return RedisSubscription(pubsub=pubsub, thread=thread)
