"""Exception hierarchy for cmdfarm."""

from __future__ import annotations


class CmdfarmError(Exception):
    """Base class for all cmdfarm errors."""


class WireFormatError(CmdfarmError, ValueError):
    """A record field does not fit its bounded wire encoding."""


class WorkerListError(CmdfarmError):
    """The worker list could not be opened."""


class NoWorkersError(CmdfarmError):
    """No worker endpoint could be loaded."""


class SubmitError(CmdfarmError):
    """The coordinator did not accept a command list."""
