"""Channel worker: subscribe, consume, transform, deliver.

One :class:`ChannelWorker` runs per channel definition.  Setup is fail-fast:
a bad destination, an unavailable Redis connection or a failed subscribe
ends this worker only.  Once listening, every event is handled strictly in
arrival order and any per-event failure (unreadable payload, transform
error, rejected delivery) is logged and dropped so the channel keeps
listening.  Delivery is at-most-once; nothing is retried.

Lifecycle::

    worker = ChannelWorker(definition, broker, gateway)
    status = await worker.run()   # returns when the worker terminates
    print(status.state, status.reason)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from relay.broker import BrokerError, PayloadError, extract_payload
from relay.channels import ChannelDefinition, InvalidDestinationError, parse_destination
from relay.gateway import DeliveryError
from relay.models import EventOutcome, WorkerState, WorkerStatus

if TYPE_CHECKING:
    from relay.broker import RedisBroker, RedisSubscription
    from relay.gateway import DiscordGateway

log = logging.getLogger(__name__)


class ChannelWorker:
    """Owns the lifecycle of one Redis subscription.

    Args:
        definition: The channel this worker serves.
        broker: Source of pub/sub connections.
        gateway: Shared Discord delivery gateway.
    """

    def __init__(
        self,
        definition: ChannelDefinition,
        broker: RedisBroker,
        gateway: DiscordGateway,
    ) -> None:
        self.definition = definition
        self._broker = broker
        self._gateway = gateway
        self._destination_id: int | None = None
        self._status = WorkerStatus(name=definition.name, topic=definition.subscription_topic)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def status(self) -> WorkerStatus:
        return self._status

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> WorkerStatus:
        """Run until setup fails or the subscription stream ends."""
        topic = self.definition.subscription_topic

        try:
            self._destination_id = parse_destination(self.definition.output_destination)
        except InvalidDestinationError as e:
            return self._terminate(f"invalid destination: {e}")

        try:
            subscription = await self._broker.connect()
        except BrokerError as e:
            return self._terminate(str(e))

        try:
            try:
                await subscription.subscribe(topic)
            except BrokerError as e:
                return self._terminate(str(e))

            self._status.state = WorkerState.SUBSCRIBED
            log.info("Successful subscription to %s (%s). Listening for data.", topic, self.name)
            return await self._listen(subscription)
        finally:
            await subscription.close()

    async def _listen(self, subscription: RedisSubscription) -> WorkerStatus:
        self._status.state = WorkerState.LISTENING
        try:
            async for event in subscription:
                outcome = await self._handle(event)
                self._record(outcome)
        except BrokerError as e:
            return self._terminate(str(e))
        return self._terminate("stream closed")

    # ------------------------------------------------------------------
    # Per-event pipeline
    # ------------------------------------------------------------------

    async def _handle(self, event: dict[str, Any] | None) -> EventOutcome:
        if event is None:
            return EventOutcome.EMPTY

        try:
            payload = extract_payload(event)
        except PayloadError as e:
            log.warning("Unable to get payload from redis message on %s: %s", self.name, e)
            return EventOutcome.MALFORMED

        log.debug("Found redis payload on %s: %r", self.name, payload)

        try:
            message = self.definition.transform(payload)
        except Exception:
            log.exception("Transform for %s raised on payload %r", self.name, payload)
            return EventOutcome.MALFORMED

        if message is None:
            return EventOutcome.SKIPPED

        try:
            await self._gateway.send(self._destination_id, message)
        except DeliveryError as e:
            log.warning("Error sending message for %s: %s", self.name, e)
            return EventOutcome.FAILED
        return EventOutcome.DELIVERED

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, outcome: EventOutcome) -> None:
        outcomes = self._status.outcomes
        outcomes[outcome] = outcomes.get(outcome, 0) + 1

    def _terminate(self, reason: str) -> WorkerStatus:
        self._status.state = WorkerState.TERMINATED
        self._status.reason = reason
        log.error("Subscription %s (%s) disabled: %s", self.name, self.definition.subscription_topic, reason)
        return self._status
