"""Coordinator: accepts submitters one at a time and dispatches their commands."""

from __future__ import annotations

import asyncio
import signal
from typing import Callable

from .config import Settings
from .dispatcher import DispatchCallback, Dispatcher
from .errors import NoWorkersError
from .log import get_logger
from .registry import WorkerRegistry
from .session import Session, SessionHandler

logger = get_logger(__name__)

SessionCallback = Callable[[Session], None]


class Coordinator:
    """Owns the worker registry and serves submitter sessions serially."""

    def __init__(
        self,
        registry: WorkerRegistry,
        settings: Settings | None = None,
        on_dispatch: DispatchCallback | None = None,
        on_session: SessionCallback | None = None,
    ):
        self.registry = registry
        self.settings = settings or Settings()
        self.on_session = on_session
        self.dispatcher = Dispatcher(registry, backoff=self.settings.backoff, on_dispatch=on_dispatch)
        self.handler = SessionHandler(self.dispatcher, identifier_limit=self.settings.identifier_limit)
        self.last_session: Session | None = None
        self._server: asyncio.AbstractServer | None = None
        self._session_lock = asyncio.Lock()
        self._shutdown = asyncio.Event()

    @property
    def port(self) -> int:
        """The bound listening port (useful when configured as 0)."""
        if self._server is None or not self._server.sockets:
            return self.settings.coordinator_port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listening socket. Refuses to start without workers."""
        if not len(self.registry):
            raise NoWorkersError("No worker servers loaded")

        self._server = await asyncio.start_server(
            self._handle_connection,
            self.settings.listen_host,
            self.settings.coordinator_port,
            backlog=self.settings.listen_backlog,
            reuse_address=True,
        )
        logger.info(
            "Coordinator listening on port %d with %d workers",
            self.port,
            len(self.registry),
        )

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        # Sessions never overlap: later connections wait here until the
        # current one has dispatched its whole list.
        async with self._session_lock:
            session = await self.handler.handle(reader, writer)
            self.last_session = session
            if self.on_session:
                self.on_session(session)

    async def run(self) -> None:
        """Serve until SIGINT/SIGTERM, then shut down cleanly."""
        await self.start()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._shutdown.set)

        try:
            await self._shutdown.wait()
            logger.info("Shutting down coordinator")
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)
            await self.stop()

    def request_shutdown(self) -> None:
        self._shutdown.set()

    async def stop(self) -> None:
        """Close the listener, let a running session finish, release channels."""
        if self._server is not None:
            self._server.close()
            async with self._session_lock:
                pass
            await self._server.wait_closed()
            self._server = None
        self.registry.close()
