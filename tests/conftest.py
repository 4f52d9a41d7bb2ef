"""Shared fixtures for the relay test suite."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from relay.broker import BrokerError
from relay.channels import ChannelDefinition
from relay.transforms import handle_asay_subscription


class FakeSubscription:
    """Stands in for RedisSubscription.

    ``events`` items are yielded in order; an exception instance is raised
    instead of yielded.  When ``hold`` is given, iteration waits on it after
    the events run out instead of ending the stream.
    """

    def __init__(self, events=(), subscribe_error=None, hold=None):
        self.events = list(events)
        self.subscribe_error = subscribe_error
        self.hold = hold
        self.topics = []
        self.closed = False

    async def subscribe(self, topic):
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.topics.append(topic)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.events:
            item = self.events.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if self.hold is not None:
            await self.hold.wait()
        raise StopAsyncIteration

    async def close(self):
        self.closed = True


class FakeBroker:
    def __init__(self, subscription=None, connect_error=None):
        self.subscription = subscription or FakeSubscription()
        self.connect_error = connect_error
        self.connects = 0

    async def connect(self):
        self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error
        return self.subscription


def redis_message(payload, channel=b"asay"):
    """Build a pub/sub message dict the way redis-py delivers it."""
    if isinstance(payload, dict):
        payload = json.dumps(payload)
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return {"type": "message", "pattern": None, "channel": channel, "data": payload}


@pytest.fixture
def gateway():
    """Mock Discord delivery gateway."""
    gw = AsyncMock()
    gw.send = AsyncMock()
    return gw


@pytest.fixture
def asay_definition():
    return ChannelDefinition(
        name="asay",
        subscription_topic="asay",
        output_destination="123456789012345678",
        transform=handle_asay_subscription,
    )


@pytest.fixture
def game_event():
    return {"source": "game", "author": "Alice", "message": "hello", "rank": "admin"}


@pytest.fixture
def broker_error():
    return BrokerError("connection refused")


@pytest.fixture
def hold():
    return asyncio.Event()
