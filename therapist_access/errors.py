"""
Exceptions raised by the access policy and its adapters.
"""


class PolicyError(Exception):
    """Base class for access policy errors."""


class Forbidden(PolicyError):
    """The actor may not see the record, or may not perform the action.

    Single-record surfaces must present this exactly like a missing record.
    """

    def __init__(self, message: str = "Therapist not found", action=None, hidden: bool = True):
        super().__init__(message)
        self.action = action
        self.hidden = hidden


class ActorResolutionDegraded(PolicyError):
    """Membership lookup failed or timed out."""


class InvalidRecord(PolicyError, ValueError):
    """A therapist record is malformed or internally inconsistent."""

    def __init__(self, record_id, reason: str):
        super().__init__(f"Invalid therapist record {record_id!r}: {reason}")
        self.record_id = record_id
        self.reason = reason
