"""Tests for process startup behaviour."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay import __main__ as entry
from relay.broker import BrokerError
from relay.gateway import DeliveryError


@pytest.fixture
def settings():
    return SimpleNamespace(
        DISCORD_TOKEN="token",
        REDIS_URL="redis://localhost:6379/0",
        REDIS_ASAY_SUBSCRIPTION="asay",
        REDIS_ASAY_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT="42",
        LOG_LEVEL="INFO",
    )


def _gateway(connect_error=None):
    gateway = MagicMock()
    gateway.connect = AsyncMock(side_effect=connect_error)
    gateway.close = AsyncMock()
    return gateway


def test_main_exits_cleanly_without_credentials(tmp_path, monkeypatch, caplog):
    monkeypatch.chdir(tmp_path)
    with patch.dict(os.environ, {}, clear=True), \
            patch("relay.__main__.asyncio.run") as run:
        entry.main()
    run.assert_not_called()
    assert "DISCORD_TOKEN, REDIS_URL" in caplog.text


@pytest.mark.asyncio
async def test_login_failure_starts_no_workers(settings):
    gateway = _gateway(DeliveryError("Discord rejected the bot token"))
    with patch("relay.gateway.DiscordGateway", return_value=gateway), \
            patch("relay.broker.RedisBroker.from_url") as from_url:
        assert await entry.run(settings) == []
    from_url.assert_not_called()
    gateway.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_bad_redis_url_starts_no_workers(settings):
    gateway = _gateway()
    with patch("relay.gateway.DiscordGateway", return_value=gateway), \
            patch("relay.broker.RedisBroker.from_url", side_effect=BrokerError("bad url")), \
            patch("relay.supervisor.DispatchSupervisor") as supervisor:
        assert await entry.run(settings) == []
    supervisor.assert_not_called()
    gateway.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_supervises_resolved_channels(settings):
    gateway = _gateway()
    broker = MagicMock()
    broker.close = AsyncMock()
    supervisor = MagicMock()
    supervisor.run = AsyncMock(return_value=["done"])
    with patch("relay.gateway.DiscordGateway", return_value=gateway), \
            patch("relay.broker.RedisBroker.from_url", return_value=broker), \
            patch("relay.supervisor.DispatchSupervisor", return_value=supervisor) as cls:
        assert await entry.run(settings) == ["done"]

    [definitions, passed_broker, passed_gateway] = cls.call_args.args
    assert [d.name for d in definitions] == ["asay"]
    assert passed_broker is broker
    assert passed_gateway is gateway
    broker.close.assert_awaited_once()
    gateway.close.assert_awaited_once()
