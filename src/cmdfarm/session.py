"""Handling of one submitter connection, from handshake to last dispatch."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from .dispatcher import Dispatcher, DispatchOutcome
from .log import get_logger
from .protocol import ENCODING, ERRORS

logger = get_logger(__name__)

ACK = b"OK"
OPEN_ERROR = b"ERROR: Cannot open file"


@dataclass
class Session:
    """State for one submitter connection."""

    host: str
    port: int
    identifier: str = ""
    dispatched: int = 0

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class SessionHandler:
    """Serves one submitter connection end-to-end.

    The submitter sends the identifier of a command list in a single
    unframed write. The list is opened here, acknowledged with ``OK`` (or
    answered with an ``ERROR:`` string), then every non-empty line is
    dispatched as one command. No result ever travels back over the
    connection.
    """

    def __init__(self, dispatcher: Dispatcher, identifier_limit: int = 255):
        self.dispatcher = dispatcher
        self.identifier_limit = identifier_limit

    async def handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> Session:
        host, port = writer.get_extra_info("peername")[:2]
        session = Session(host=host, port=port)
        logger.info("New submitter connection: %s", session)

        try:
            data = await reader.read(self.identifier_limit)
            if not data:
                logger.error("Error reading identifier from %s", session)
                return session

            session.identifier = data.decode(ENCODING, ERRORS)
            logger.info("Command list requested: %r", session.identifier)

            # File access runs in a thread so a slow path or a FIFO cannot
            # stall the event loop.
            try:
                f = await asyncio.to_thread(
                    open, session.identifier, encoding=ENCODING, errors=ERRORS
                )
            except (OSError, ValueError) as e:
                logger.error("Cannot open %r: %s", session.identifier, e)
                writer.write(OPEN_ERROR)
                await writer.drain()
                return session

            writer.write(ACK)
            await writer.drain()

            with f:
                while True:
                    line = await asyncio.to_thread(f.readline)
                    if not line:
                        break
                    command = line.rstrip("\r\n")
                    if not command:
                        continue
                    logger.info("Processing command: %r", command)
                    outcome = await self.dispatcher.dispatch(command, session.host, session.port)
                    if outcome is DispatchOutcome.SENT:
                        session.dispatched += 1

            logger.info("%d commands processed for submitter %s", session.dispatched, session)
            return session
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                # Submitter may already be gone
                pass
