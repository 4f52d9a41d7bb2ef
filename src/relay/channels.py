"""Channel bindings: which Redis topic feeds which Discord channel.

The relay runs one worker per binding.  Each :class:`ChannelBinding` names
the two settings that hold its topic and destination plus the transform used
for its payloads; :func:`resolve_channels` turns the bindings into concrete
:class:`ChannelDefinition` values from the loaded settings.

Usage::

    definitions = resolve_channels(get_settings())
    for definition in definitions:
        print(definition.name, definition.subscription_topic)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

from relay.transforms import (
    Transform,
    handle_access_subscription,
    handle_asay_subscription,
    handle_meta_subscription,
    handle_round_subscription,
)

log = logging.getLogger(__name__)

# Discord snowflakes are unsigned 64-bit integers.
_MAX_DESTINATION_ID: Final[int] = 2**64 - 1


class InvalidDestinationError(ValueError):
    """Raised when an output destination is not a valid Discord channel ID."""


@dataclass(frozen=True, slots=True)
class ChannelBinding:
    """Static registration of one relay channel.

    Attributes:
        name: Short label used in logs and task names.
        topic_setting: Settings field holding the Redis subscription topic.
        destination_setting: Settings field holding the Discord channel ID.
        transform: Function turning a payload into an outbound message.
    """

    name: str
    topic_setting: str
    destination_setting: str
    transform: Transform


@dataclass(frozen=True, slots=True)
class ChannelDefinition:
    """A resolved binding that drives exactly one channel worker."""

    name: str
    subscription_topic: str
    output_destination: str
    transform: Transform


# ---------------------------------------------------------------------------
# Registration list
# ---------------------------------------------------------------------------

CHANNEL_BINDINGS: Final[tuple[ChannelBinding, ...]] = (
    ChannelBinding(
        name="asay",
        topic_setting="REDIS_ASAY_SUBSCRIPTION",
        destination_setting="REDIS_ASAY_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT",
        transform=handle_asay_subscription,
    ),
    ChannelBinding(
        name="access",
        topic_setting="REDIS_ACCESS_SUBSCRIPTION",
        destination_setting="REDIS_ACCESS_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT",
        transform=handle_access_subscription,
    ),
    ChannelBinding(
        name="round",
        topic_setting="REDIS_ROUND_SUBSCRIPTION",
        destination_setting="REDIS_ROUND_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT",
        transform=handle_round_subscription,
    ),
    ChannelBinding(
        name="meta",
        topic_setting="REDIS_META_SUBSCRIPTION",
        destination_setting="REDIS_META_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT",
        transform=handle_meta_subscription,
    ),
)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_channels(
    settings: Any,
    bindings: tuple[ChannelBinding, ...] = CHANNEL_BINDINGS,
) -> list[ChannelDefinition]:
    """Build a :class:`ChannelDefinition` for every fully configured binding.

    A binding whose topic or destination setting is missing or blank is
    skipped with a warning; the remaining bindings are unaffected.  The
    destination is only checked for presence here, its format is validated
    by the worker that uses it.

    Args:
        settings: Object exposing the binding settings as attributes
            (normally :class:`~relay.config.RelaySettings`).
        bindings: Registration list to resolve.

    Returns:
        Definitions in registration order.
    """
    definitions: list[ChannelDefinition] = []
    for binding in bindings:
        topic = _lookup(settings, binding.topic_setting)
        if topic is None:
            log.warning("Unable to find %s. Disabling subscription.", binding.topic_setting)
            continue

        destination = _lookup(settings, binding.destination_setting)
        if destination is None:
            log.warning("Unable to find %s. Disabling subscription.", binding.destination_setting)
            continue

        definitions.append(
            ChannelDefinition(
                name=binding.name,
                subscription_topic=topic,
                output_destination=destination,
                transform=binding.transform,
            )
        )
    return definitions


def parse_destination(value: str) -> int:
    """Parse a Discord channel ID.

    Raises:
        InvalidDestinationError: If *value* is not a non-zero unsigned 64-bit
            integer written in ASCII digits.
    """
    if not (value.isascii() and value.isdigit()):
        raise InvalidDestinationError(f"{value!r} is not a numeric channel ID")
    channel_id = int(value)
    if not 0 < channel_id <= _MAX_DESTINATION_ID:
        raise InvalidDestinationError(f"{value!r} is out of range for a channel ID")
    return channel_id


def _lookup(settings: Any, key: str) -> str | None:
    value = getattr(settings, key, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None
