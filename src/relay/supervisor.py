"""Dispatch supervisor: one concurrent worker per channel definition.

The supervisor starts every :class:`~relay.worker.ChannelWorker` as its own
asyncio task and waits for all of them.  Terminations are logged as they
happen; a terminated worker is not restarted and never takes the others
down with it.

Usage::

    supervisor = DispatchSupervisor(definitions, broker, gateway)
    statuses = await supervisor.run()   # blocks until every worker ends
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from relay.models import WorkerState, WorkerStatus
from relay.worker import ChannelWorker

if TYPE_CHECKING:
    from relay.broker import RedisBroker
    from relay.channels import ChannelDefinition
    from relay.gateway import DiscordGateway

log = logging.getLogger(__name__)


class DispatchSupervisor:
    """Run and watch the channel workers.

    Args:
        definitions: Resolved channel definitions, one worker each.
        broker: Redis broker shared as a connection factory.
        gateway: Discord gateway shared by all workers.
    """

    def __init__(
        self,
        definitions: Sequence[ChannelDefinition],
        broker: RedisBroker,
        gateway: DiscordGateway,
    ) -> None:
        self.workers: list[ChannelWorker] = [
            ChannelWorker(definition, broker, gateway) for definition in definitions
        ]

    def statuses(self) -> list[WorkerStatus]:
        """Return the live status of every worker."""
        return [worker.status for worker in self.workers]

    async def run(self) -> list[WorkerStatus]:
        """Start all workers and wait until each has terminated.

        Returns:
            Final statuses in definition order.
        """
        if not self.workers:
            log.warning("No channel definitions resolved. Nothing to relay.")
            return []

        tasks: dict[asyncio.Task[WorkerStatus], ChannelWorker] = {
            asyncio.create_task(worker.run(), name=f"relay:{worker.name}"): worker
            for worker in self.workers
        }
        log.info("Started %d channel worker(s).", len(tasks))

        pending: set[asyncio.Task[WorkerStatus]] = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                self._observe(task, tasks[task])
            if pending:
                log.warning(
                    "%d channel worker(s) still running. Terminated workers are not restarted.",
                    len(pending),
                )

        log.info("All channel workers have terminated.")
        return self.statuses()

    @staticmethod
    def _observe(task: asyncio.Task[WorkerStatus], worker: ChannelWorker) -> None:
        status = worker.status
        if task.cancelled():
            status.state = WorkerState.TERMINATED
            status.reason = "cancelled"
        elif task.exception() is not None:
            error = task.exception()
            status.state = WorkerState.TERMINATED
            status.reason = f"crashed: {error!r}"
            log.error("Channel worker %s crashed.", worker.name, exc_info=error)
        log.info("Channel worker %s terminated: %s", worker.name, status.reason)
