"""Payload transforms: raw pub/sub payload in, optional chat message out.

Each channel binding carries one transform.  A transform is a plain function
of the payload string; it must not touch shared state or perform I/O, which
lets every channel worker call its own transform without coordination.
Returning ``None`` means "nothing to deliver".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Final

from pydantic import ValidationError

from relay.models import AsaySubscription, OutboundMessage

log = logging.getLogger(__name__)

Transform = Callable[[str], OutboundMessage | None]

# Messages that originated on Discord are never echoed back.
DISCORD_SOURCE: Final[str] = "discord"

# RGB(124, 68, 12)
ASAY_COLOR: Final[int] = 0x7C440C


def handle_asay_subscription(payload: str) -> OutboundMessage | None:
    """Render an admin-say event as a chat message.

    Args:
        payload: JSON document matching :class:`~relay.models.AsaySubscription`.

    Returns:
        The message to deliver, or ``None`` when the payload does not parse
        or originated from Discord itself.
    """
    try:
        event = AsaySubscription.model_validate_json(payload)
    except ValidationError as e:
        log.warning(
            "Unable to deserialize payload to AsaySubscription (%d error(s)): %s",
            e.error_count(),
            e.errors(include_url=False),
        )
        return None

    if event.source == DISCORD_SOURCE:
        return None

    return OutboundMessage(
        title=event.author,
        body=event.message,
        footer=f"{event.rank}@{event.source}",
        timestamp=datetime.now(timezone.utc),
        color=ASAY_COLOR,
    )


def handle_access_subscription(payload: str) -> OutboundMessage | None:
    """Placeholder: access events are not rendered yet, so nothing is delivered."""
    return None


def handle_round_subscription(payload: str) -> OutboundMessage | None:
    """Placeholder: round events are not rendered yet, so nothing is delivered."""
    return None


def handle_meta_subscription(payload: str) -> OutboundMessage | None:
    """Placeholder: meta events are not rendered yet, so nothing is delivered."""
    return None
