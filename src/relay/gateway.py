"""Delivery of relay messages to Discord.

The relay never needs the Discord websocket gateway: it only posts messages.
:class:`DiscordGateway` logs in over HTTP and sends embeds to channels by
ID through partial messageables, so no guild or channel cache is required.

Lifecycle::

    gateway = DiscordGateway(token)
    await gateway.connect()
    await gateway.send(123456789012345678, message)
    await gateway.close()
"""

from __future__ import annotations

import logging

import aiohttp
import discord

from relay.formatter import MessageFormatter
from relay.models import OutboundMessage

log = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    """Raised when Discord rejects or fails a request."""


class DiscordGateway:
    """Send :class:`~relay.models.OutboundMessage` values to Discord channels.

    A single gateway is shared by every channel worker; discord.py's HTTP
    client handles concurrent requests and rate limits internally.

    Args:
        token: Discord bot token.
        client: Optional pre-built client (mainly for tests).
    """

    def __init__(self, token: str, client: discord.Client | None = None) -> None:
        self._token = token
        self._client = client or discord.Client(intents=discord.Intents.none())

    async def connect(self) -> None:
        """Authenticate against the Discord HTTP API.

        Raises:
            DeliveryError: If the token is rejected or Discord is unreachable.
        """
        try:
            await self._client.login(self._token)
        except discord.LoginFailure as e:
            raise DeliveryError(f"Discord rejected the bot token: {e}") from e
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise DeliveryError(f"Unable to reach Discord: {e}") from e
        log.info("Redis bot connected to discord.")

    async def send(self, destination_id: int, message: OutboundMessage) -> None:
        """Post *message* as an embed to the channel *destination_id*.

        Raises:
            DeliveryError: If the request fails.  The send is not retried.
        """
        channel = self._client.get_partial_messageable(destination_id)
        try:
            await channel.send(embed=MessageFormatter.to_embed(message))
        except (discord.DiscordException, aiohttp.ClientError, OSError) as e:
            raise DeliveryError(f"Error sending message to {destination_id}: {e}") from e

    async def close(self) -> None:
        await self._client.close()
