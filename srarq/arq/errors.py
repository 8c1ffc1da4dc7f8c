"""
Protocol error taxonomy.

None of these end a session. ``MalformedFrame`` costs a single message,
``BackpressureRejected`` is returned to the caller to retry or drop, and the
rest are absorbed where they are raised.
"""


class ARQError(Exception):
    """Base class for selective repeat protocol errors."""


class MalformedFrame(ARQError, ValueError):
    """Bytes could not be parsed as a packet."""


class BackpressureRejected(ARQError):
    """Enqueue refused because the pending queue is full."""

    def __init__(self, pending: int, limit: int):
        super().__init__(f"pending queue full ({pending}/{limit})")
        self.pending = pending
        self.limit = limit


class OutOfWindowAcknowledgment(ARQError):
    """Acknowledgment outside the sender's current acceptance interval."""

    def __init__(self, seq_num: int, base: int, size: int):
        super().__init__(
            f"ACK {seq_num} outside window [base={base}, size={size}]"
        )
        self.seq_num = seq_num
        self.base = base
        self.size = size


class AcknowledgmentMisrouted(ARQError):
    """An acknowledgment was handed to the receiver."""


class DataMisrouted(ARQError):
    """A data packet was handed to the sender."""
