# mirror/errors.py


class MirrorWriteFailed(Exception):
    """
    A write to the mirror database failed.

    Raised by the synchronizer and only ever logged and counted. The
    primary commit it was mirroring is already durable.
    """

    def __init__(self, operation: str, event_id: str, cause: Exception | None = None):
        self.operation = operation
        self.event_id = event_id
        self.cause = cause
        super().__init__(f"Mirror {operation} failed for event {event_id}: {cause}")
