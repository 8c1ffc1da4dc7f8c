"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure and encoding
- Modular sequence arithmetic
- Sender with window management and backpressure
- Receiver with out-of-order buffering
- Event scheduler and timer management
"""

from .errors import (
    ARQError, MalformedFrame, BackpressureRejected,
    OutOfWindowAcknowledgment, AcknowledgmentMisrouted, DataMisrouted
)
from .frame import Packet, PacketBuffer, encode, decode
from .sender import SRSender, SendWindow
from .receiver import SRReceiver, ReceiveWindow
from .timer import EventScheduler, TimerManager, RetransmissionTimer

__all__ = [
    'ARQError',
    'MalformedFrame',
    'BackpressureRejected',
    'OutOfWindowAcknowledgment',
    'AcknowledgmentMisrouted',
    'DataMisrouted',
    'Packet',
    'PacketBuffer',
    'encode',
    'decode',
    'SRSender',
    'SendWindow',
    'SRReceiver',
    'ReceiveWindow',
    'EventScheduler',
    'TimerManager',
    'RetransmissionTimer'
]
