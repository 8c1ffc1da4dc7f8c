"""
Simulated Lossy Channel

This module implements an in-memory relay between the two protocol
endpoints that drops packets according to a loss model and delays the
survivors by a random amount, which also reorders them.
"""

import heapq
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

import numpy as np

from config import LOSS_PROBABILITY, MAX_DELAY
from .base import Channel, Origin


class LossModel(ABC):
    """Decides, packet by packet, whether the channel drops it."""

    @abstractmethod
    def should_drop(self) -> bool:
        """Return True if the next packet is lost."""

    @abstractmethod
    def reset(self, seed: Optional[int] = None):
        """Reset the model state and statistics."""

    def get_statistics(self) -> dict:
        return {}


class BernoulliLoss(LossModel):
    """
    Independent per-packet loss with a fixed probability.

    Attributes:
        probability: Loss probability in [0, 1]
        rng: Random number generator
    """

    def __init__(self, probability: float = LOSS_PROBABILITY, seed: Optional[int] = None):
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"Loss probability must be in [0, 1], got {probability}")
        self.probability = probability
        self.rng = np.random.default_rng(seed)

        self.total_packets = 0
        self.total_dropped = 0

    def should_drop(self) -> bool:
        self.total_packets += 1
        dropped = self.probability > 0 and self.rng.random() < self.probability
        if dropped:
            self.total_dropped += 1
        return dropped

    def reset(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.total_packets = 0
        self.total_dropped = 0

    def get_statistics(self) -> dict:
        observed = (self.total_dropped / self.total_packets
                    if self.total_packets > 0 else 0.0)
        return {
            'model': 'bernoulli',
            'loss_probability': self.probability,
            'total_packets': self.total_packets,
            'total_dropped': self.total_dropped,
            'observed_loss': observed
        }


@dataclass(order=True)
class InFlight:
    """Packet travelling through the channel."""
    arrival_time: float
    order: int
    data: bytes = field(compare=False)
    origin: Origin = field(compare=False)


class LossyChannel(Channel):
    """
    In-memory lossy, delaying channel.

    Each packet is first offered to the loss model of its direction. A
    surviving packet is given a delay drawn uniformly from ``[0, max_delay)``
    and becomes visible to ``drain_arrived`` once the clock passes its
    arrival time.

    Attributes:
        clock: Time source shared with the session scheduler
        max_delay: Maximum one-way delay in seconds
        loss_models: Loss model per sending endpoint
    """

    def __init__(
        self,
        clock: Callable[[], float],
        loss_probability: float = LOSS_PROBABILITY,
        max_delay: float = MAX_DELAY,
        seed: Optional[int] = None,
        forward_loss: Optional[LossModel] = None,
        reverse_loss: Optional[LossModel] = None,
        logger=None
    ):
        """
        Initialize the channel.

        Args:
            clock: Zero-argument callable returning the current time
            loss_probability: Bernoulli loss used when no model is given
            max_delay: Maximum one-way delay in seconds
            seed: Random seed for reproducibility
            forward_loss: Loss model for sender → receiver packets
            reverse_loss: Loss model for receiver → sender packets (ACKs)
            logger: Optional SimulationLogger
        """
        if max_delay < 0:
            raise ValueError(f"Maximum delay must be non-negative, got {max_delay}")

        self.clock = clock
        self.max_delay = max_delay
        self.seed = seed
        self.logger = logger

        reverse_seed = None if seed is None else seed + 1000
        self.loss_models: Dict[Origin, LossModel] = {
            Origin.SENDER: forward_loss or BernoulliLoss(loss_probability, seed),
            Origin.RECEIVER: reverse_loss or BernoulliLoss(loss_probability, reverse_seed),
        }

        # Delay RNG
        self.rng = np.random.default_rng(seed)

        self.in_flight: List[InFlight] = []
        self._counter = itertools.count()

        # Statistics
        self.sent = {origin: 0 for origin in Origin}
        self.dropped = {origin: 0 for origin in Origin}
        self.delivered = {origin: 0 for origin in Origin}

    def send(self, data: bytes, origin: Origin) -> None:
        self.sent[origin] += 1

        if self.loss_models[origin].should_drop():
            self.dropped[origin] += 1
            if self.logger:
                self.logger.debug(
                    f"{len(data)}B from {origin.value} LOST in channel", "CHANNEL"
                )
            return

        delay = self.rng.random() * self.max_delay if self.max_delay > 0 else 0.0
        arrival_time = self.clock() + delay
        heapq.heappush(self.in_flight, InFlight(
            arrival_time=arrival_time,
            order=next(self._counter),
            data=data,
            origin=origin
        ))

        if self.logger:
            self.logger.debug(
                f"{len(data)}B from {origin.value}, arrives at {arrival_time:.4f}s",
                "CHANNEL"
            )

    def drain_arrived(self) -> Iterator[bytes]:
        now = self.clock()
        arrived = []
        while self.in_flight and self.in_flight[0].arrival_time <= now:
            item = heapq.heappop(self.in_flight)
            self.delivered[item.origin] += 1
            arrived.append(item.data)
        return iter(arrived)

    def pending_count(self) -> int:
        """Number of packets still in flight."""
        return len(self.in_flight)

    def has_pending_packets(self) -> bool:
        return len(self.in_flight) > 0

    def reset(self, seed: Optional[int] = None):
        """Drop everything in flight and reseed the channel."""
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.loss_models[Origin.SENDER].reset(seed)
        self.loss_models[Origin.RECEIVER].reset(None if seed is None else seed + 1000)
        self.in_flight.clear()
        self.sent = {origin: 0 for origin in Origin}
        self.dropped = {origin: 0 for origin in Origin}
        self.delivered = {origin: 0 for origin in Origin}

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        return {
            'data_sent': self.sent[Origin.SENDER],
            'data_dropped': self.dropped[Origin.SENDER],
            'data_delivered': self.delivered[Origin.SENDER],
            'acks_sent': self.sent[Origin.RECEIVER],
            'acks_dropped': self.dropped[Origin.RECEIVER],
            'acks_delivered': self.delivered[Origin.RECEIVER],
            'in_flight': len(self.in_flight),
            'forward_loss': self.loss_models[Origin.SENDER].get_statistics(),
            'reverse_loss': self.loss_models[Origin.RECEIVER].get_statistics()
        }
