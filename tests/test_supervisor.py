"""Tests for the dispatch supervisor and cross-worker isolation."""

import asyncio
from dataclasses import replace

import pytest

from conftest import FakeBroker, FakeSubscription, redis_message
from relay.models import EventOutcome, WorkerState
from relay.supervisor import DispatchSupervisor
from relay.worker import ChannelWorker


class RoutingBroker:
    """Hands out one prepared subscription per connect() call, in order."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)

    async def connect(self):
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_no_definitions_returns_immediately(gateway):
    supervisor = DispatchSupervisor([], FakeBroker(), gateway)
    assert await supervisor.run() == []


@pytest.mark.asyncio
async def test_runs_one_worker_per_definition(asay_definition, gateway, game_event):
    second = replace(asay_definition, name="meta", subscription_topic="meta")
    sub_a = FakeSubscription([redis_message(game_event)])
    sub_b = FakeSubscription([redis_message(game_event)])
    supervisor = DispatchSupervisor([asay_definition, second], RoutingBroker(sub_a, sub_b), gateway)

    statuses = await supervisor.run()

    assert [s.name for s in statuses] == ["asay", "meta"]
    assert sub_a.topics == ["asay"]
    assert sub_b.topics == ["meta"]
    assert all(s.state is WorkerState.TERMINATED for s in statuses)
    assert gateway.send.await_count == 2


@pytest.mark.asyncio
async def test_failed_worker_does_not_affect_others(asay_definition, gateway, game_event, broker_error):
    broken = replace(asay_definition, name="round", subscription_topic="round")
    bad_destination = replace(asay_definition, name="meta", output_destination="oops")
    healthy = FakeSubscription([redis_message(game_event)] * 3)
    supervisor = DispatchSupervisor(
        [broken, asay_definition, bad_destination],
        RoutingBroker(broker_error, healthy),
        gateway,
    )

    broken_status, healthy_status, bad_status = await supervisor.run()

    assert "connection refused" in broken_status.reason
    assert bad_status.reason.startswith("invalid destination")
    assert healthy_status.count(EventOutcome.DELIVERED) == 3
    assert healthy_status.reason == "stream closed"


@pytest.mark.asyncio
async def test_blocked_worker_does_not_delay_other(asay_definition, gateway, game_event, hold):
    idle = FakeSubscription(hold=hold)
    busy = FakeSubscription([redis_message(game_event)] * 2)
    blocked_worker = ChannelWorker(replace(asay_definition, name="idle"), FakeBroker(idle), gateway)
    busy_worker = ChannelWorker(asay_definition, FakeBroker(busy), gateway)

    blocked = asyncio.create_task(blocked_worker.run())
    status = await asyncio.wait_for(busy_worker.run(), timeout=1)

    assert status.count(EventOutcome.DELIVERED) == 2
    assert blocked_worker.status.state is WorkerState.LISTENING
    hold.set()
    await blocked


@pytest.mark.asyncio
async def test_crashing_worker_is_recorded(asay_definition, gateway, game_event):
    class ExplodingSubscription(FakeSubscription):
        async def __anext__(self):
            raise RuntimeError("unexpected")

    other = replace(asay_definition, name="meta", subscription_topic="meta")
    supervisor = DispatchSupervisor(
        [asay_definition, other],
        RoutingBroker(ExplodingSubscription(), FakeSubscription([redis_message(game_event)])),
        gateway,
    )

    crashed, fine = await supervisor.run()

    assert crashed.state is WorkerState.TERMINATED
    assert crashed.reason.startswith("crashed: RuntimeError")
    assert fine.count(EventOutcome.DELIVERED) == 1


@pytest.mark.asyncio
async def test_statuses_snapshot_before_run(asay_definition, gateway):
    supervisor = DispatchSupervisor([asay_definition], FakeBroker(), gateway)
    [status] = supervisor.statuses()
    assert status.state is WorkerState.STARTING
    assert status.topic == "asay"
