"""cmdfarm: Distribute shell commands from a coordinator to a pool of workers."""

from .config import Settings, load_settings
from .coordinator import Coordinator
from .dispatcher import Dispatcher, DispatchOutcome
from .protocol import CommandRequest, CommandResult, ResultKind
from .registry import Worker, WorkerRegistry
from .session import Session, SessionHandler

__all__ = [
    "Settings",
    "load_settings",
    "Coordinator",
    "Dispatcher",
    "DispatchOutcome",
    "CommandRequest",
    "CommandResult",
    "ResultKind",
    "Worker",
    "WorkerRegistry",
    "Session",
    "SessionHandler",
]
