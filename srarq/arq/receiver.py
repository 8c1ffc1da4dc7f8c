"""
Selective Repeat ARQ Receiver

This module implements the receiver side of the Selective Repeat ARQ protocol,
including out-of-order buffering, in-order delivery and per-packet ACKs.
"""

from typing import Optional, List, Tuple, Callable
from dataclasses import dataclass

from ..channel.base import Channel, Origin
from ..utils.logger import SimulationLogger, get_logger
from .frame import Packet
from .sequence import seq_add, seq_offset


@dataclass
class ReceiveWindow:
    """
    Sliding window for the receiver.

    Attributes:
        base: Next sequence number required for in-order delivery
        size: Window size
        max_seq: Sequence space size (for wrapping)
    """
    base: int = 0
    size: int = 4
    max_seq: int = 8

    def offset(self, seq_num: int) -> int:
        """Distance from the window base forward to ``seq_num``."""
        return seq_offset(self.base, seq_num, self.max_seq)

    def in_space(self, seq_num: int) -> bool:
        """Check if sequence number is a valid value in ``[0, max_seq)``."""
        return 0 <= seq_num < self.max_seq

    def in_window(self, seq_num: int) -> bool:
        """Check if sequence number is within the receive window."""
        return self.offset(seq_num) < self.size

    def is_ahead(self, seq_num: int) -> bool:
        """Check if sequence number is ahead of base but inside the window."""
        return 0 < self.offset(seq_num) < self.size

    def advance_base(self):
        """Slide the base forward by one."""
        self.base = seq_add(self.base, 1, self.max_seq)


class SRReceiver:
    """
    Selective Repeat ARQ Receiver.

    Implements the receiver side of SR-ARQ with:
    - Out-of-order packet buffering
    - Selective ACK generation (every data packet is acknowledged)
    - In-order delivery to the application

    Attributes:
        window: Receive window state
        buffer: Out-of-order packets ahead of the window base
        delivered_log: Payloads delivered so far, in order
    """

    def __init__(
        self,
        window_size: int,
        seq_space_size: int,
        channel: Channel,
        logger: Optional[SimulationLogger] = None,
        on_data_delivered: Optional[Callable[[bytes, int], None]] = None
    ):
        """
        Initialize SR receiver.

        Args:
            window_size: Receive window size
            seq_space_size: Sequence space size
            channel: Channel ACKs are emitted into
            logger: Logger (defaults to the global logger)
            on_data_delivered: Callback when data is delivered in-order
        """
        self.window_size = window_size
        self.seq_space_size = seq_space_size
        self.channel = channel
        self.logger = logger or get_logger()
        self.on_data_delivered = on_data_delivered

        self.window = ReceiveWindow(size=window_size, max_seq=seq_space_size)
        self.buffer: dict[int, Packet] = {}
        self.delivered_log: List[bytes] = []

        # Statistics
        self.packets_received = 0
        self.duplicate_packets = 0
        self.out_of_order_packets = 0
        self.out_of_range_packets = 0
        self.acks_sent = 0
        self.total_delivered_bytes = 0

    @property
    def expected_seq(self) -> int:
        """Next sequence number required for in-order delivery."""
        return self.window.base

    def receive_packet(self, packet: Packet) -> Optional[Packet]:
        """
        Process a received packet.

        Args:
            packet: Received packet

        Returns:
            The ACK emitted for it, or None for ACK packets and out-of-range
            sequence numbers (both ignored)
        """
        if packet.is_ack:
            return None

        self.packets_received += 1
        seq_num = packet.seq_num
        if not self.window.in_space(seq_num):
            self.out_of_range_packets += 1
            self.logger.warning(
                f"Dropped packet {seq_num} (sequence space is {self.seq_space_size})", "RX"
            )
            return None
        self.logger.packet_received(seq_num, self.window.base)

        # Acknowledge whatever arrived, not just the next expected packet
        ack = self._send_ack(seq_num)

        if seq_num == self.window.base:
            self._deliver(packet)
            self._deliver_buffered()
        elif self.window.is_ahead(seq_num):
            if seq_num in self.buffer:
                self.duplicate_packets += 1
            else:
                self.buffer[seq_num] = packet
                self.out_of_order_packets += 1
                self.logger.debug(f"Buffered out-of-order packet {seq_num}", "RX")
        else:
            # Already delivered; the ACK above is all the sender needs
            self.duplicate_packets += 1

        return ack

    def _send_ack(self, seq_num: int) -> Packet:
        ack = Packet.ack(seq_num)
        self.acks_sent += 1
        self.logger.ack_sent(seq_num)
        self.channel.send(ack.serialize(), Origin.RECEIVER)
        return ack

    def _deliver(self, packet: Packet):
        self.delivered_log.append(packet.payload)
        self.total_delivered_bytes += len(packet.payload)
        self.logger.delivered(packet.seq_num, packet.payload)

        if self.on_data_delivered:
            self.on_data_delivered(packet.payload, packet.seq_num)

        self.window.advance_base()

    def _deliver_buffered(self):
        """Deliver buffered packets that are now in-order."""
        while self.window.base in self.buffer:
            self._deliver(self.buffer.pop(self.window.base))

    def snapshot(self) -> Tuple[int, List[bytes]]:
        """
        Observe receiver state without modifying it.

        Returns:
            Tuple of (expected sequence number, copy of delivered log)
        """
        return self.window.base, list(self.delivered_log)

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'size': self.window.size,
            'buffered': sorted(self.buffer, key=self.window.offset)
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'duplicate_packets': self.duplicate_packets,
            'out_of_order_packets': self.out_of_order_packets,
            'out_of_range_packets': self.out_of_range_packets,
            'acks_sent': self.acks_sent,
            'delivered_items': len(self.delivered_log),
            'total_delivered_bytes': self.total_delivered_bytes
        }
