"""Redis pub/sub access for channel workers.

:class:`RedisBroker` owns the shared connection pool; every worker asks it
for its own :class:`RedisSubscription`, subscribes to exactly one topic and
then iterates over incoming messages.

Lifecycle::

    broker = RedisBroker.from_url("redis://localhost:6379/0")
    subscription = await broker.connect()
    await subscription.subscribe("asay")
    async for message in subscription:
        if message is None:
            continue  # empty poll
        payload = extract_payload(message)
    await subscription.close()
    await broker.close()
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

log = logging.getLogger(__name__)


class BrokerError(RuntimeError):
    """Raised when Redis cannot provide or keep a subscription."""


class PayloadError(ValueError):
    """Raised when a pub/sub message carries no usable payload."""


class RedisSubscription:
    """A single pub/sub connection subscribed to one topic.

    Async iteration blocks until the next message arrives and yields the raw
    message dict, or ``None`` when a poll returned nothing.  Iteration stops
    once the subscription is closed; connection failures surface as
    :class:`BrokerError`.
    """

    def __init__(self, pubsub: PubSub) -> None:
        self._pubsub = pubsub
        self._topic: str | None = None
        self._closed: bool = False

    @property
    def topic(self) -> str | None:
        return self._topic

    async def subscribe(self, topic: str) -> None:
        """Subscribe to *topic*.  A subscription can only be bound once."""
        if self._topic is not None:
            raise BrokerError(f"Already subscribed to {self._topic!r}")
        try:
            await self._pubsub.subscribe(topic)
        except (RedisError, OSError) as e:
            raise BrokerError(f"Unable to subscribe to {topic!r}: {e}") from e
        self._topic = topic

    def __aiter__(self) -> RedisSubscription:
        return self

    async def __anext__(self) -> dict[str, Any] | None:
        if self._closed:
            raise StopAsyncIteration
        if self._topic is None:
            raise BrokerError("Subscription has no topic. Call subscribe() first.")
        try:
            return await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=None)
        except (RedisError, OSError) as e:
            raise BrokerError(f"Lost pub/sub connection for {self._topic!r}: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._pubsub.aclose()


class RedisBroker:
    """Factory for per-worker :class:`RedisSubscription` objects.

    Args:
        client: An ``redis.asyncio.Redis`` instance.  Use :meth:`from_url`
            to build one from a connection URL.
    """

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisBroker:
        """Create a broker from a ``redis://`` style URL.

        Raises:
            BrokerError: If the URL cannot be used to build a client.
        """
        try:
            client = aioredis.Redis.from_url(url)
        except ValueError as e:
            raise BrokerError(f"Unable to get redis client: {e}") from e
        return cls(client)

    async def connect(self) -> RedisSubscription:
        """Acquire a dedicated pub/sub connection.

        Raises:
            BrokerError: If no connection could be established.
        """
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.connect()
        except (RedisError, OSError) as e:
            await pubsub.aclose()
            raise BrokerError(f"Unable to get async pubsub connection: {e}") from e
        return RedisSubscription(pubsub)

    async def close(self) -> None:
        await self._client.aclose()


def extract_payload(message: dict[str, Any]) -> str:
    """Return the text payload of a pub/sub message.

    Raises:
        PayloadError: If the message has no ``data`` or it is not UTF-8 text.
    """
    data = message.get("data")
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadError(f"Payload is not valid UTF-8: {e}") from e
    if isinstance(data, str):
        return data
    raise PayloadError(f"Message carries no text payload (data={data!r})")
