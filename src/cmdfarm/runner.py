#!/usr/bin/env python3
"""Command-line entry points for the coordinator, worker and submitter."""

import argparse
import asyncio
import sys

from .config import Settings, load_settings
from .coordinator import Coordinator
from .dispatcher import DispatchOutcome
from .errors import CmdfarmError
from .log import setup_logging
from .protocol import CommandRequest, CommandResult
from .registry import Worker, WorkerRegistry
from .submitter import submit
from .worker import WorkerServer

# ANSI colors for different workers
COLORS = [
    "\033[36m",  # Cyan
    "\033[33m",  # Yellow
    "\033[35m",  # Magenta
    "\033[32m",  # Green
    "\033[34m",  # Blue
    "\033[91m",  # Light Red
    "\033[96m",  # Light Cyan
    "\033[93m",  # Light Yellow
]
RESET = "\033[0m"


def _configure(component: str) -> Settings | None:
    """Load settings and set up logging. Returns None after reporting an error."""
    try:
        settings = load_settings()
        setup_logging(component, settings.log_level, settings.log_dir)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
    except OSError as e:
        print(f"Error: cannot set up logging: {e}", file=sys.stderr)
    else:
        return settings
    return None


def _printable(command: str) -> str:
    """Render a command for the console, escaping bytes that are not UTF-8."""
    return command.encode("utf-8", "backslashreplace").decode("utf-8")


def coordinator_main() -> int:
    """Entry point for ``cmdfarm-coordinator <worker-list>``."""
    parser = argparse.ArgumentParser(
        description="Accept command lists from submitters and dispatch them to workers"
    )
    parser.add_argument("worker_list", help="Path to the worker list (<host> <port> per line)")
    args = parser.parse_args()

    settings = _configure("coordinator")
    if settings is None:
        return 1

    try:
        registry = WorkerRegistry.load(args.worker_list, max_workers=settings.max_workers)
    except CmdfarmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Assign colors to workers
    worker_colors = {
        id(worker): COLORS[i % len(COLORS)] for i, worker in enumerate(registry)
    }

    def on_dispatch(command: str, outcome: DispatchOutcome, worker: Worker | None) -> None:
        if worker is None:
            print(f"[-] {outcome.value}: {_printable(command)}")
            return
        color = worker_colors.get(id(worker), "")
        print(f"{color}[{worker}]{RESET} {outcome.value}: $ {_printable(command)}")

    coordinator = Coordinator(registry, settings, on_dispatch=on_dispatch)
    try:
        asyncio.run(coordinator.run())
    except CmdfarmError as e:
        registry.close()
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        registry.close()
        print(f"Error: cannot listen on port {settings.coordinator_port}: {e}", file=sys.stderr)
        return 1

    return 0


def worker_main() -> int:
    """Entry point for ``cmdfarm-worker <port>``."""
    parser = argparse.ArgumentParser(description="Execute commands received from the coordinator")
    parser.add_argument("port", type=int, help="UDP port to listen on")
    args = parser.parse_args()

    if not 0 < args.port <= 65535:
        print(f"Error: invalid port: {args.port}", file=sys.stderr)
        return 1

    settings = _configure(f"worker-{args.port}")
    if settings is None:
        return 1

    def on_result(request: CommandRequest, result: CommandResult) -> None:
        print(f"[{request.originator_host}:{request.originator_port}] {result.message}: $ {_printable(result.command)}")

    server = WorkerServer(args.port, on_result=on_result)
    try:
        asyncio.run(server.run())
    except OSError as e:
        print(f"Error: cannot listen on port {args.port}: {e}", file=sys.stderr)
        return 1

    return 0


def submitter_main() -> int:
    """Entry point for ``cmdfarm-submit <command-list>``."""
    parser = argparse.ArgumentParser(description="Submit a command list to the coordinator")
    parser.add_argument("command_list", help="Path to a file with one shell command per line")
    args = parser.parse_args()

    settings = _configure("submitter")
    if settings is None:
        return 1

    try:
        asyncio.run(submit(args.command_list, settings))
    except CmdfarmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Commands handed over to the coordinator")
    return 0


if __name__ == "__main__":
    sys.exit(coordinator_main())
