"""Worker registry: the fixed pool of worker endpoints loaded at startup."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from pathlib import Path

from .errors import WorkerListError
from .log import get_logger

logger = get_logger(__name__)

MAX_HOST_LEN = 255


@dataclass
class Worker:
    """A worker endpoint and the datagram channel used to reach it."""

    host: str
    port: int
    address: tuple[str, int]
    channel: socket.socket = field(repr=False)
    available: bool = True  # Set at load time; nothing updates it afterwards

    def send(self, payload: bytes) -> None:
        """Transmit one datagram. Raises OSError on failure."""
        self.channel.sendto(payload, self.address)

    def close(self) -> None:
        self.channel.close()

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_entry(line: str) -> tuple[str, int] | None:
    """Parse a ``<host> <port>`` line. Returns None if it is malformed."""
    parts = line.split()
    if len(parts) < 2 or len(parts[0]) > MAX_HOST_LEN:
        return None
    try:
        port = int(parts[1])
    except ValueError:
        return None
    if not 0 < port <= 65535:
        return None
    return parts[0], port


def open_worker(host: str, port: int) -> Worker | None:
    """Resolve a worker host and open its channel, or None on failure."""
    try:
        ip = socket.gethostbyname(host)
    except OSError as e:
        logger.error("Cannot resolve hostname %s: %s", host, e)
        return None

    try:
        channel = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as e:
        logger.error("Cannot open channel for %s:%d: %s", host, port, e)
        return None

    return Worker(host=host, port=port, address=(ip, port), channel=channel)


class WorkerRegistry:
    """Ordered, fixed-size set of workers. Read-only once loaded."""

    def __init__(self, workers: list[Worker] | None = None):
        self._workers: tuple[Worker, ...] = tuple(workers or ())

    @classmethod
    def load(cls, source: str | Path, max_workers: int = 10) -> WorkerRegistry:
        """Load workers from a line-oriented ``<host> <port>`` file.

        Blank lines and ``#`` comments are skipped, malformed lines and
        entries that cannot be resolved or opened are skipped with a
        diagnostic. Reading stops once ``max_workers`` workers are loaded.
        """
        try:
            f = open(source)
        except OSError as e:
            raise WorkerListError(f"Cannot open worker list: {source}: {e}") from e

        workers: list[Worker] = []
        with f:
            for line in f:
                if len(workers) >= max_workers:
                    break
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                entry = parse_entry(line)
                if entry is None:
                    logger.warning("Invalid worker list line: %s", line)
                    continue

                worker = open_worker(*entry)
                if worker is None:
                    continue
                logger.info("Loaded worker: %s", worker)
                workers.append(worker)

        return cls(workers)

    @property
    def workers(self) -> tuple[Worker, ...]:
        return self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def __iter__(self):
        return iter(self._workers)

    def select_worker(self) -> Worker | None:
        """Return the first available worker in registration order."""
        for worker in self._workers:
            if worker.available:
                return worker
        return None

    def close(self) -> None:
        """Release every worker channel."""
        for worker in self._workers:
            worker.close()
