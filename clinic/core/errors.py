# clinic/core/errors.py
"""
Exception types raised by the scheduling engine.

The web layer maps these to HTTP status codes in clinic.routes.schedule_api.
"""


class SchedulingError(Exception):
    """Base class for all scheduling errors."""

    pass


class InvalidInputError(SchedulingError, ValueError):
    """Input that cannot produce a meaningful result (bad duration, malformed date)."""

    pass


class UnknownReferenceError(InvalidInputError):
    """A provider, assignment or other ID that does not exist."""

    def __init__(self, kind: str, ref_id: str):
        self.kind = kind
        self.ref_id = ref_id
        super().__init__(f"Unknown {kind}: {ref_id!r}")


class ConflictError(SchedulingError):
    """An override action that was rejected. Nothing has been written."""

    pass


class OverrideConflictError(ConflictError):
    """Another admin changed the same occurrence first."""

    pass


class StorageError(SchedulingError):
    """General error type for problems loading data files."""

    pass
