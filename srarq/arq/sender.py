"""
Selective Repeat ARQ Sender

This module implements the sender side of the Selective Repeat ARQ protocol,
including sliding window management, packet buffering, retransmission and
backpressure towards the application.
"""

from typing import Optional, Union, Callable
from dataclasses import dataclass

from ..channel.base import Channel, Origin
from ..utils.buffer import SendBuffer
from ..utils.logger import SimulationLogger, get_logger
from .errors import BackpressureRejected, OutOfWindowAcknowledgment
from .frame import Packet, PacketBuffer
from .sequence import in_window, seq_add, seq_offset, window_range
from .timer import EventScheduler, TimerManager


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Both ``base`` and ``next_seq`` are kept reduced modulo ``max_seq``.

    Attributes:
        base: Base of the window (oldest unacknowledged packet)
        next_seq: Next sequence number to assign
        size: Window size
        max_seq: Sequence space size (for wrapping)
    """
    base: int = 0
    next_seq: int = 0
    size: int = 4
    max_seq: int = 8

    @property
    def in_flight(self) -> int:
        """Number of sequence numbers in ``[base, next_seq)``."""
        return seq_offset(self.base, self.next_seq, self.max_seq)

    @property
    def available_slots(self) -> int:
        """Number of available slots in the window."""
        return self.size - self.in_flight

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.in_flight >= self.size

    def in_window(self, seq_num: int) -> bool:
        """Check if sequence number is within ``[base, base + size)``."""
        return in_window(seq_num, self.base, self.size, self.max_seq)

    def offset(self, seq_num: int) -> int:
        """
        Position of an acknowledged sequence number inside the window.

        Raises:
            OutOfWindowAcknowledgment: If it lies outside the window or
                outside the sequence space
        """
        if not 0 <= seq_num < self.max_seq or not self.in_window(seq_num):
            raise OutOfWindowAcknowledgment(seq_num, self.base, self.size)
        return seq_offset(self.base, seq_num, self.max_seq)

    def advance_base(self):
        """Slide the base forward by one."""
        self.base = seq_add(self.base, 1, self.max_seq)

    def get_next_seq(self) -> int:
        """Get next sequence number and increment counter."""
        seq = self.next_seq
        self.next_seq = seq_add(self.next_seq, 1, self.max_seq)
        return seq


class SRSender:
    """
    Selective Repeat ARQ Sender.

    Implements the sender side of SR-ARQ with:
    - Bounded pending queue (backpressure)
    - Sliding window management over a modular sequence space
    - Per-packet timers
    - Selective retransmission

    Every outstanding packet is retransmitted on each timeout, without
    backoff and without a retry limit, until it is acknowledged or the
    sender is shut down.

    Attributes:
        window: Send window state
        outstanding: Packets sent but not yet slid past
        acknowledged: Acknowledged sequence numbers not yet contiguous with base
        pending: Items waiting for window capacity
        timer_manager: Per-packet timer manager
    """

    def __init__(
        self,
        window_size: int,
        seq_space_size: int,
        timeout: float,
        max_pending: int,
        channel: Channel,
        scheduler: EventScheduler,
        logger: Optional[SimulationLogger] = None,
        on_ack: Optional[Callable[[int], None]] = None,
        on_timeout: Optional[Callable[[int, int], None]] = None
    ):
        """
        Initialize SR sender.

        Args:
            window_size: Send window size
            seq_space_size: Sequence space size
            timeout: Retransmission timeout in seconds
            max_pending: Pending items accepted before enqueue is refused
            channel: Channel packets are emitted into
            scheduler: Scheduler the retransmission timers run on
            logger: Logger (defaults to the global logger)
            on_ack: Callback when an ACK is accepted (receives seq_num)
            on_timeout: Callback before a timed-out packet is retransmitted
                (receives seq_num and the retransmission count)
        """
        self.window_size = window_size
        self.seq_space_size = seq_space_size
        self.timeout = timeout

        self.channel = channel
        self.logger = logger or get_logger()
        self.on_ack = on_ack
        self.on_timeout = on_timeout

        self.window = SendWindow(size=window_size, max_seq=seq_space_size)
        self.outstanding = PacketBuffer(max_size=window_size)
        self.acknowledged: set[int] = set()
        self.pending = SendBuffer(max_items=max_pending)

        self.timer_manager = TimerManager(
            scheduler=scheduler,
            default_timeout=timeout,
            on_timeout=self._on_timeout
        )

        # Statistics
        self.packets_sent = 0
        self.retransmissions = 0
        self.acks_accepted = 0
        self.acks_ignored = 0
        self.total_bytes_sent = 0

        self.shut_down = False

    def enqueue(self, item: Union[bytes, str], strict: bool = False) -> bool:
        """
        Accept an item for transmission.

        Args:
            item: Payload (str is UTF-8 encoded)
            strict: Raise instead of returning False when refused

        Returns:
            True if accepted, False if the pending queue is full or the
            sender is shut down

        Raises:
            BackpressureRejected: If refused and ``strict`` is set
        """
        if self.shut_down:
            return False

        data = item.encode('utf-8') if isinstance(item, str) else bytes(item)

        if not self.pending.add(data):
            self.logger.backpressure(self.pending.count, self.pending.max_items)
            if strict:
                raise BackpressureRejected(self.pending.count, self.pending.max_items)
            return False

        self._drain()
        return True

    def can_send(self) -> bool:
        """Check if sender can transmit a new packet."""
        return (not self.shut_down and
                not self.window.is_full and
                not self.pending.is_empty)

    def _drain(self):
        """Move pending items into the window while it has room."""
        while self.can_send():
            data = self.pending.get()
            seq_num = self.window.next_seq
            packet = Packet.data(seq_num, data)

            self.outstanding.add(packet)
            self.timer_manager.start_timer(seq_num)
            self._transmit(packet)
            self.window.get_next_seq()

            self.packets_sent += 1
            self.logger.window_update(
                self.window.base, self.window.next_seq, self.window.size
            )

    def _transmit(self, packet: Packet):
        self.total_bytes_sent += packet.total_size
        self.logger.packet_sent(packet.seq_num, packet.kind, packet.total_size)
        self.channel.send(packet.serialize(), Origin.SENDER)

    def on_acknowledgment(self, seq_num: int) -> bool:
        """
        Process an acknowledgment.

        Args:
            seq_num: Acknowledged sequence number

        Returns:
            True if the ACK was accepted, False if ignored
        """
        if self.shut_down:
            return False

        try:
            self.window.offset(seq_num)
        except OutOfWindowAcknowledgment as e:
            self.acks_ignored += 1
            self.logger.debug(f"Ignored: {e}", "ACK")
            return False

        if not self.outstanding.contains(seq_num) or seq_num in self.acknowledged:
            # Not yet sent, or a duplicate
            self.acks_ignored += 1
            self.logger.debug(f"Ignored ACK {seq_num} (not awaiting it)", "ACK")
            return False

        self.logger.ack_received(seq_num)
        self.acknowledged.add(seq_num)
        self.timer_manager.cancel_timer(seq_num)
        self.acks_accepted += 1

        if self.on_ack:
            self.on_ack(seq_num)

        self._slide_window()
        self._drain()
        return True

    def receive_ack(self, packet: Packet) -> bool:
        """Process an ACK packet. Data packets are ignored."""
        if not packet.is_ack:
            return False
        return self.on_acknowledgment(packet.seq_num)

    def _slide_window(self):
        """Slide the window forward past consecutive acknowledged packets."""
        moved = False
        while self.window.base in self.acknowledged:
            self.acknowledged.remove(self.window.base)
            self.outstanding.remove(self.window.base)
            self.window.advance_base()
            moved = True

        if moved:
            self.logger.window_update(
                self.window.base, self.window.next_seq, self.window.size
            )

    def _on_timeout(self, seq_num: int, restarts: int):
        """Retransmit an unacknowledged packet and restart its timer."""
        if self.shut_down:
            return

        packet = self.outstanding.get(seq_num)
        if packet is None or seq_num in self.acknowledged:
            return

        self.logger.timeout(seq_num, restarts + 1)
        if self.on_timeout:
            self.on_timeout(seq_num, restarts + 1)
        self.logger.retransmit(seq_num)
        self.retransmissions += 1
        self._transmit(packet)
        self.timer_manager.restart_timer(seq_num, restarts)

    def shutdown(self):
        """Cancel every timer. All later operations are no-ops."""
        if self.shut_down:
            return
        self.shut_down = True
        self.timer_manager.close()

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'size': self.window.size,
            'available': self.window.available_slots,
            'in_flight': window_range(
                self.window.base, self.window.in_flight, self.seq_space_size
            ),
            'outstanding': self.outstanding.get_sequence_numbers(),
            'acknowledged': sorted(self.acknowledged),
            'pending': self.pending.count
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'packets_sent': self.packets_sent,
            'retransmissions': self.retransmissions,
            'acks_accepted': self.acks_accepted,
            'acks_ignored': self.acks_ignored,
            'total_bytes_sent': self.total_bytes_sent,
            'pending_items': self.pending.count,
            'rejected_items': self.pending.total_rejected,
            'shut_down': self.shut_down,
            **self.timer_manager.get_statistics()
        }
