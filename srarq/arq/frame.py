"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the packet exchanged between sender and receiver,
its fixed-width wire format, and the buffer used to hold packets awaiting
acknowledgment.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from config import PACKET_HEADER_SIZE
from .errors import MalformedFrame


MAX_SEQ_NUM = 0xFFFFFFFF


@dataclass(frozen=True)
class Packet:
    """
    Protocol packet.

    Wire Layout (9-byte header, big-endian):
        - Sequence Number: 4 bytes (unsigned int)
        - ACK Flag: 1 byte (0 = data, 1 = acknowledgment)
        - Payload Length: 4 bytes (unsigned int)
        - Payload: Payload Length bytes

    No checksum is carried: the channel may lose, delay or reorder packets
    but never corrupts them.

    Attributes:
        seq_num: Sequence number (already reduced modulo the sequence space)
        payload: Packet payload, empty for acknowledgments
        is_ack: True for acknowledgment packets
    """

    seq_num: int
    payload: bytes = b''
    is_ack: bool = False

    HEADER_FORMAT = '!IBI'  # Network byte order
    HEADER_SIZE = PACKET_HEADER_SIZE

    def __post_init__(self):
        """Validate packet after initialization."""
        if not 0 <= self.seq_num <= MAX_SEQ_NUM:
            raise ValueError(f"Sequence number out of range: {self.seq_num}")
        if not isinstance(self.payload, bytes):
            raise ValueError("Payload must be bytes")
        if self.is_ack and self.payload:
            raise ValueError("Acknowledgment packets carry no payload")

    @property
    def total_size(self) -> int:
        """Get total packet size on the wire (header + payload)."""
        return self.HEADER_SIZE + len(self.payload)

    @property
    def kind(self) -> str:
        return "ACK" if self.is_ack else "DATA"

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            Serialized packet as bytes
        """
        header = struct.pack(
            self.HEADER_FORMAT,
            self.seq_num,
            1 if self.is_ack else 0,
            len(self.payload)
        )
        return header + self.payload

    @classmethod
    def deserialize(cls, data: bytes) -> 'Packet':
        """
        Deserialize bytes to a Packet.

        Bytes following the declared payload are ignored.

        Args:
            data: Serialized packet bytes

        Returns:
            Decoded packet

        Raises:
            MalformedFrame: If the buffer is truncated or the flag is invalid
        """
        if len(data) < cls.HEADER_SIZE:
            raise MalformedFrame(
                f"buffer of {len(data)} bytes shorter than {cls.HEADER_SIZE}-byte header"
            )

        seq_num, flag, payload_len = struct.unpack(
            cls.HEADER_FORMAT, data[:cls.HEADER_SIZE]
        )

        if flag not in (0, 1):
            raise MalformedFrame(f"invalid acknowledgment flag: {flag}")

        end = cls.HEADER_SIZE + payload_len
        if len(data) < end:
            raise MalformedFrame(
                f"declared {payload_len} payload bytes, "
                f"only {len(data) - cls.HEADER_SIZE} present"
            )

        is_ack = flag == 1
        payload = bytes(data[cls.HEADER_SIZE:end])
        try:
            return cls(seq_num=seq_num, payload=payload, is_ack=is_ack)
        except ValueError as e:
            raise MalformedFrame(str(e)) from e

    @classmethod
    def data(cls, seq_num: int, payload: bytes) -> 'Packet':
        """Create a DATA packet."""
        return cls(seq_num=seq_num, payload=payload, is_ack=False)

    @classmethod
    def ack(cls, seq_num: int) -> 'Packet':
        """Create an ACK packet for ``seq_num``."""
        return cls(seq_num=seq_num, is_ack=True)

    def __repr__(self) -> str:
        return (f"Packet(type={self.kind}, seq={self.seq_num}, "
                f"payload_len={len(self.payload)})")


def encode(packet: Packet) -> bytes:
    """Encode a packet to its wire format."""
    return packet.serialize()


def decode(data: bytes) -> Packet:
    """Decode wire bytes to a packet, raising ``MalformedFrame`` on failure."""
    return Packet.deserialize(data)


class PacketBuffer:
    """
    Buffer for packets keyed by sequence number.

    The sender keeps its outstanding (sent, not yet slid past) packets here.
    """

    def __init__(self, max_size: int):
        """
        Initialize packet buffer.

        Args:
            max_size: Maximum number of packets to buffer
        """
        self.max_size = max_size
        self.buffer: dict[int, Packet] = {}

    def add(self, packet: Packet) -> bool:
        """
        Add a packet to the buffer.

        Args:
            packet: Packet to add

        Returns:
            True if successful, False if buffer full
        """
        if len(self.buffer) >= self.max_size:
            return False

        self.buffer[packet.seq_num] = packet
        return True

    def get(self, seq_num: int) -> Optional[Packet]:
        """Get a packet by sequence number."""
        return self.buffer.get(seq_num)

    def remove(self, seq_num: int) -> Optional[Packet]:
        """Remove and return a packet, or None if absent."""
        return self.buffer.pop(seq_num, None)

    def contains(self, seq_num: int) -> bool:
        """Check if buffer contains a packet with given sequence number."""
        return seq_num in self.buffer

    def clear(self):
        """Clear the buffer."""
        self.buffer.clear()

    @property
    def size(self) -> int:
        """Get number of packets in buffer."""
        return len(self.buffer)

    @property
    def is_full(self) -> bool:
        return len(self.buffer) >= self.max_size

    @property
    def is_empty(self) -> bool:
        return len(self.buffer) == 0

    def get_sequence_numbers(self) -> list:
        """Get sequence numbers in insertion (send) order."""
        return list(self.buffer.keys())
