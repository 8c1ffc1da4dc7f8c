"""
Selective Repeat Protocol Session

This module wires a sender and a receiver to a channel, drives the
periodic tick that hands arrived packets to them, and exposes the
session control surface.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple, Union

from config import (
    WINDOW_SIZE, SEQUENCE_SPACE_SIZE, TIMEOUT,
    MAX_PENDING_ITEMS, TICK_INTERVAL, minimum_sequence_space
)
from .arq.errors import AcknowledgmentMisrouted, DataMisrouted, MalformedFrame
from .arq.frame import Packet
from .arq.receiver import SRReceiver
from .arq.sender import SRSender
from .arq.timer import EventScheduler, ScheduledCall
from .channel.base import Channel
from .utils.logger import SimulationLogger, get_logger


@dataclass(frozen=True)
class ProtocolConfig:
    """
    Session configuration, fixed for the session lifetime.

    Attributes:
        window_size: Send/receive window size
        seq_space_size: Sequence numbers are taken modulo this value
        timeout: Retransmission timeout in seconds
        max_pending: Pending items accepted before enqueue is refused
        tick_interval: Period of the channel arrival tick in seconds
    """
    window_size: int = WINDOW_SIZE
    seq_space_size: int = SEQUENCE_SPACE_SIZE
    timeout: float = TIMEOUT
    max_pending: int = MAX_PENDING_ITEMS
    tick_interval: float = TICK_INTERVAL

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.window_size < 1:
            raise ValueError("Window size must be at least 1")
        if self.seq_space_size <= self.window_size:
            raise ValueError("Sequence space must be larger than the window size")
        if self.seq_space_size > 2**32:
            raise ValueError("Sequence space must fit in 32 bits")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.max_pending < 1:
            raise ValueError("Pending queue must hold at least one item")
        if self.tick_interval <= 0:
            raise ValueError("Tick interval must be positive")

    @property
    def is_unambiguous(self) -> bool:
        """True if old duplicates can never be mistaken for new packets."""
        return self.seq_space_size >= minimum_sequence_space(self.window_size)

    @classmethod
    def from_defaults(cls, **overrides) -> 'ProtocolConfig':
        """Build a config from the module defaults, overriding some fields."""
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown configuration options: {sorted(unknown)}")
        return cls(**overrides)


@dataclass(frozen=True)
class SessionStatus:
    """Immutable snapshot of session progress."""
    sender_base: int
    sender_next: int
    receiver_expected: int
    delivered_items: Tuple[bytes, ...]


class Endpoint(Enum):
    """Engine a packet is handed to."""
    SENDER = "sender"
    RECEIVER = "receiver"


class ProtocolSession:
    """
    One selective repeat session: a sender, a receiver and the tick that
    connects them through the channel.

    All engine state changes run on the injected scheduler, so they are
    serialized with the tick and with retransmission timers.

    Attributes:
        config: Session configuration
        channel: Injected channel
        scheduler: Injected event scheduler
        sender: Sender engine
        receiver: Receiver engine
    """

    def __init__(
        self,
        config: ProtocolConfig,
        channel: Channel,
        scheduler: EventScheduler,
        logger: Optional[SimulationLogger] = None,
        on_data_delivered: Optional[Callable[[bytes, int], None]] = None,
        on_ack: Optional[Callable[[int], None]] = None,
        on_timeout: Optional[Callable[[int, int], None]] = None
    ):
        """
        Initialize the session.

        Args:
            config: Protocol configuration
            channel: Channel both engines send into
            scheduler: Scheduler for the tick and retransmission timers
            logger: Logger (defaults to the global logger)
            on_data_delivered: Callback for each in-order delivery
            on_ack: Callback for each accepted ACK
            on_timeout: Callback for each retransmission timeout
        """
        self.config = config
        self.channel = channel
        self.scheduler = scheduler
        self.logger = logger or get_logger()
        self.logger.set_clock(scheduler.time)

        if not config.is_unambiguous:
            self.logger.warning(
                f"Sequence space {config.seq_space_size} is smaller than "
                f"2 × window ({config.window_size}); stale duplicates may be "
                f"taken for new packets",
                "CONFIG"
            )

        self.sender = SRSender(
            window_size=config.window_size,
            seq_space_size=config.seq_space_size,
            timeout=config.timeout,
            max_pending=config.max_pending,
            channel=channel,
            scheduler=scheduler,
            logger=self.logger,
            on_ack=on_ack,
            on_timeout=on_timeout
        )
        self.receiver = SRReceiver(
            window_size=config.window_size,
            seq_space_size=config.seq_space_size,
            channel=channel,
            logger=self.logger,
            on_data_delivered=on_data_delivered
        )

        self._tick_handle: Optional[ScheduledCall] = None
        self.running = False
        self.stopped = False

        # Statistics
        self.ticks = 0
        self.malformed_frames = 0
        self.misrouted_packets = 0

    @property
    def is_running(self) -> bool:
        return self.running

    def start(self):
        """Start the periodic channel tick."""
        if self.running or self.stopped:
            return

        self.running = True
        self.logger.session_start({
            'window_size': self.config.window_size,
            'seq_space_size': self.config.seq_space_size,
            'timeout': self.config.timeout,
            'max_pending': self.config.max_pending
        })
        self._schedule_tick()

    def stop(self):
        """Cancel the tick and shut the sender down. Idempotent."""
        if self.stopped:
            return

        self.running = False
        self.stopped = True
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        self.sender.shutdown()
        self.logger.session_stop(len(self.receiver.delivered_log))

    def _schedule_tick(self):
        self._tick_handle = self.scheduler.call_later(
            self.config.tick_interval, self._tick
        )

    def _tick(self):
        """Route everything that has arrived, then re-arm."""
        if not self.running:
            return

        self.ticks += 1
        for data in self.channel.drain_arrived():
            self._dispatch(data)

        if self.running:
            self._schedule_tick()

    def _dispatch(self, data: bytes):
        try:
            packet = Packet.deserialize(data)
        except MalformedFrame as e:
            self.malformed_frames += 1
            self.logger.malformed(str(e))
            return

        if packet.is_ack:
            self.sender.receive_ack(packet)
        else:
            self.receiver.receive_packet(packet)

    def inject(self, packet: Packet, endpoint: Endpoint) -> bool:
        """
        Hand a decoded packet directly to one engine.

        For transports that already know a packet's direction. Handing an
        engine the wrong packet kind is a wiring defect: it is logged and
        the packet is ignored.

        Args:
            packet: Decoded packet
            endpoint: Engine to deliver it to

        Returns:
            True if the packet was processed
        """
        try:
            self._check_route(packet, endpoint)
        except (AcknowledgmentMisrouted, DataMisrouted) as e:
            self.misrouted_packets += 1
            self.logger.misrouted(str(e))
            return False

        if endpoint is Endpoint.SENDER:
            self.sender.receive_ack(packet)
        else:
            self.receiver.receive_packet(packet)
        return True

    @staticmethod
    def _check_route(packet: Packet, endpoint: Endpoint):
        if endpoint is Endpoint.RECEIVER and packet.is_ack:
            raise AcknowledgmentMisrouted(
                f"ACK {packet.seq_num} delivered to the receiver"
            )
        if endpoint is Endpoint.SENDER and not packet.is_ack:
            raise DataMisrouted(
                f"DATA {packet.seq_num} delivered to the sender"
            )

    def enqueue(self, item: Union[bytes, str]) -> bool:
        """
        Offer one item for transmission.

        Returns:
            True if accepted, False under backpressure or after stop
        """
        return self.sender.enqueue(item)

    def send_data(self, items: Iterable[Union[bytes, str]]) -> List[Union[bytes, str]]:
        """
        Offer several items, dropping those refused.

        Returns:
            Items that were not accepted
        """
        rejected = []
        for item in items:
            if not self.sender.enqueue(item):
                self.logger.warning(f"Data buffer full, dropping: {item!r}", "SESSION")
                rejected.append(item)
        return rejected

    def snapshot_status(self) -> SessionStatus:
        """Get an immutable snapshot of session progress."""
        expected, delivered = self.receiver.snapshot()
        return SessionStatus(
            sender_base=self.sender.window.base,
            sender_next=self.sender.window.next_seq,
            receiver_expected=expected,
            delivered_items=tuple(delivered)
        )

    def get_statistics(self) -> dict:
        """Get combined session statistics."""
        stats = {
            'time': self.scheduler.now,
            'running': self.running,
            'ticks': self.ticks,
            'malformed_frames': self.malformed_frames,
            'misrouted_packets': self.misrouted_packets,
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics()
        }
        get_channel_stats = getattr(self.channel, 'get_statistics', None)
        if callable(get_channel_stats):
            stats['channel'] = get_channel_stats()
        return stats
