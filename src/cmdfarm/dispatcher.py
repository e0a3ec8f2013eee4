"""Dispatch of single commands to workers over datagram channels."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

from .errors import WireFormatError
from .log import get_logger
from .protocol import CommandRequest
from .registry import Worker, WorkerRegistry

logger = get_logger(__name__)


class DispatchOutcome(Enum):
    """What happened to one command handed to the dispatcher."""

    SENT = "sent"
    DROPPED = "dropped"  # No worker available after the backoff
    FAILED = "failed"  # Transmission error
    REJECTED = "rejected"  # Does not fit the wire record


# (command, outcome, worker or None) -> None
DispatchCallback = Callable[[str, DispatchOutcome, "Worker | None"], None]


class Dispatcher:
    """Picks a worker and ships one CommandRequest to it, fire-and-forget."""

    def __init__(
        self,
        registry: WorkerRegistry,
        backoff: float = 1.0,
        on_dispatch: DispatchCallback | None = None,
    ):
        self.registry = registry
        self.backoff = backoff
        self.on_dispatch = on_dispatch

    def _emit(self, command: str, outcome: DispatchOutcome, worker: Worker | None) -> DispatchOutcome:
        if self.on_dispatch:
            self.on_dispatch(command, outcome, worker)
        return outcome

    async def _select(self) -> Worker | None:
        worker = self.registry.select_worker()
        if worker is None:
            logger.info("No worker available, waiting %.1fs", self.backoff)
            await asyncio.sleep(self.backoff)
            worker = self.registry.select_worker()
        return worker

    async def dispatch(
        self, command: str, originator_host: str, originator_port: int
    ) -> DispatchOutcome:
        """Send ``command`` to a worker on behalf of the given originator.

        Never raises for per-command problems: they are logged and reported
        through the returned outcome so the caller can move on.
        """
        request = CommandRequest(command, originator_host, originator_port)
        try:
            payload = request.encode()
        except WireFormatError as e:
            logger.error("Command rejected: %s", e)
            return self._emit(command, DispatchOutcome.REJECTED, None)

        worker = await self._select()
        if worker is None:
            logger.error("No available workers, dropping command: %r", command)
            return self._emit(command, DispatchOutcome.DROPPED, None)

        try:
            worker.send(payload)
        except OSError as e:
            logger.error("Send to worker %s failed: %s", worker, e)
            return self._emit(command, DispatchOutcome.FAILED, worker)

        logger.debug("Command sent to %s: %r", worker, command)
        return self._emit(command, DispatchOutcome.SENT, worker)
