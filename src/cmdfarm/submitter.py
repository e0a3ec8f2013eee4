"""Submitter: hands a command list to the coordinator and waits."""

from __future__ import annotations

import asyncio
from pathlib import Path

from .config import Settings
from .errors import SubmitError
from .log import get_logger

logger = get_logger(__name__)

SUCCESS_MARKER = b"OK"


async def submit(identifier: str, settings: Settings | None = None) -> str:
    """Send a command list identifier to the coordinator.

    The list must exist locally; only its identifier travels, the
    coordinator reads the file itself. Returns the coordinator's reply once
    the configured wait has elapsed. Results sent by workers are not
    collected.
    """
    settings = settings or Settings()

    # Only checks that the list can be opened
    with open(Path(identifier)):
        pass

    logger.info(
        "Connecting to coordinator %s:%d...",
        settings.coordinator_host,
        settings.coordinator_port,
    )
    reader, writer = await asyncio.open_connection(
        settings.coordinator_host, settings.coordinator_port
    )
    try:
        writer.write(identifier.encode("utf-8"))
        await writer.drain()
        logger.info("Command list '%s' sent to coordinator", identifier)

        reply = await reader.read(settings.reply_limit)
        if not reply:
            raise SubmitError("No response from coordinator")
        if not reply.startswith(SUCCESS_MARKER):
            raise SubmitError(f"Coordinator error: {reply.decode('utf-8', errors='replace')}")

        logger.info("Coordinator accepted the commands, waiting %.1fs", settings.submitter_wait)
        await asyncio.sleep(settings.submitter_wait)
        return reply.decode("utf-8", errors="replace")
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
