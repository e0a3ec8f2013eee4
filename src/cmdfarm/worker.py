"""Worker: executes commands received as datagrams and replies to the originator."""

from __future__ import annotations

import asyncio
import signal
from typing import Callable

from .errors import WireFormatError
from .log import get_logger
from .protocol import REQUEST_SIZE, CommandRequest, CommandResult

logger = get_logger(__name__)

# (request, result) -> None
ResultCallback = Callable[[CommandRequest, CommandResult], None]


async def execute(command: str) -> int:
    """Run a command through the host shell and return its exit code.

    The command shares the worker's console. A command killed by a signal
    yields a negative code, and one that cannot be launched yields -1.
    """
    try:
        proc = await asyncio.create_subprocess_shell(command)
    except OSError as e:
        logger.error("Cannot execute %r: %s", command, e)
        return -1
    return await proc.wait()


class WorkerProtocol(asyncio.DatagramProtocol):
    """Queues incoming requests; a single task executes them in order."""

    def __init__(self, on_result: ResultCallback | None = None):
        self.on_result = on_result
        self.transport: asyncio.DatagramTransport | None = None
        self.queue: asyncio.Queue[CommandRequest] = asyncio.Queue()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        try:
            request = CommandRequest.decode(data)
        except WireFormatError as e:
            logger.error("Ignoring malformed request from %s:%d: %s", addr[0], addr[1], e)
            return
        logger.info(
            "Received command: %r (from %s:%d)",
            request.command,
            request.originator_host,
            request.originator_port,
        )
        self.queue.put_nowait(request)

    def error_received(self, exc: Exception) -> None:
        logger.error("Receive failed: %s", exc)

    async def serve(self) -> None:
        """Execute queued requests forever, replying to each originator."""
        while True:
            request = await self.queue.get()
            code = await execute(request.command)
            result = CommandResult.from_code(request.command, code)
            logger.info("Result: %s (code=%d)", result.message, code)

            if self.on_result:
                self.on_result(request, result)
            self._reply(request, result)

    def _reply(self, request: CommandRequest, result: CommandResult) -> None:
        if self.transport is None:
            return
        try:
            self.transport.sendto(
                result.encode(), (request.originator_host, request.originator_port)
            )
        except (OSError, WireFormatError) as e:
            logger.error(
                "Reply to %s:%d failed: %s",
                request.originator_host,
                request.originator_port,
                e,
            )


class WorkerServer:
    """Binds the worker's datagram endpoint and runs its execute loop."""

    def __init__(self, port: int, host: str = "0.0.0.0", on_result: ResultCallback | None = None):
        self.host = host
        self.port = port
        self.on_result = on_result
        self.protocol: WorkerProtocol | None = None
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None
        self._shutdown = asyncio.Event()

    @property
    def bound_port(self) -> int:
        if self._transport is None:
            return self.port
        return self._transport.get_extra_info("sockname")[1]

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._transport, self.protocol = await loop.create_datagram_endpoint(
            lambda: WorkerProtocol(on_result=self.on_result),
            local_addr=(self.host, self.port),
        )
        self._task = asyncio.create_task(self.protocol.serve())
        logger.info("Worker listening on port %d (datagram size %d)", self.bound_port, REQUEST_SIZE)

    async def run(self) -> None:
        """Serve until SIGINT/SIGTERM."""
        await self.start()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._shutdown.set)

        try:
            await self._shutdown.wait()
            logger.info("Shutting down worker")
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)
            await self.stop()

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None
