"""Core data types shared across the relay.

Everything here is a plain value: outbound messages produced by transforms,
the schema of the admin-say payload, and the per-worker status that the
supervisor reports on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    """A structured chat message ready for delivery.

    Attributes:
        title: Headline of the message (rendered as the embed title).
        body: Main text (rendered as the embed description).
        footer: Optional small print under the body.
        timestamp: Optional timestamp shown alongside the footer.
        color: Optional accent colour expressed as a hex integer.
    """

    title: str
    body: str
    footer: str | None = None
    timestamp: datetime | None = None
    color: int | None = None


class AsaySubscription(BaseModel):
    """Admin-say event published by the game server.

    Strict: values of the wrong JSON type are rejected, not coerced.
    """

    model_config = ConfigDict(strict=True)

    source: str
    round_id: str = ""
    author: str
    message: str
    admin: int = Field(default=0, ge=0, le=255)
    rank: str


class WorkerState(str, Enum):
    """Lifecycle of a single channel worker."""

    STARTING = "starting"
    SUBSCRIBED = "subscribed"
    LISTENING = "listening"
    TERMINATED = "terminated"


class EventOutcome(str, Enum):
    """What happened to one event pulled from a subscription."""

    EMPTY = "empty"
    MALFORMED = "malformed"
    SKIPPED = "skipped"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class WorkerStatus:
    """Point-in-time view of a channel worker."""

    name: str
    topic: str
    state: WorkerState = WorkerState.STARTING
    reason: str | None = None
    outcomes: dict[EventOutcome, int] = field(default_factory=dict)

    @property
    def is_alive(self) -> bool:
        return self.state is not WorkerState.TERMINATED

    def count(self, outcome: EventOutcome) -> int:
        return self.outcomes.get(outcome, 0)
