# events/errors.py
"""
Registration ledger errors.

Every error carries a stable `code` so the command layer and the HTTP
views can tell the kinds apart without string matching.
"""


class LedgerError(Exception):
    code = "ledger_error"
    default_message = "Registration ledger error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFound(LedgerError):
    code = "not_found"
    default_message = "Event not found."


class AlreadyRegistered(LedgerError):
    code = "already_registered"
    default_message = "You are already registered for this event."


class NotRegistered(LedgerError):
    code = "not_registered"
    default_message = "You are not registered for this event."


class CapacityExceeded(LedgerError):
    code = "capacity_exceeded"
    default_message = "Event has reached maximum capacity."


class Conflict(LedgerError):
    code = "conflict"
    default_message = "The event is busy. Please try again."
