"""
Session Simulator - Virtual-Time Transfer Simulation

This module runs one complete transfer through a ProtocolSession over a
simulated lossy channel, driving the virtual clock until every item has
been delivered or the time limit is reached.
"""

from typing import Optional, List, Dict, Sequence, Union
from dataclasses import dataclass
import time
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    WINDOW_SIZE, TIMEOUT, MAX_PENDING_ITEMS, TICK_INTERVAL,
    LOSS_PROBABILITY, MAX_DELAY, ITEMS_PER_RUN, RNG_SEED_BASE,
    MAX_SIMULATION_TIME, DEMO_DATA, minimum_sequence_space
)
from srarq.session import ProtocolConfig, ProtocolSession
from srarq.arq.timer import EventScheduler
from srarq.channel.lossy import LossyChannel
from srarq.channel.gilbert_elliot import GilbertElliottLoss
from srarq.utils.logger import SimulationLogger, LogLevel


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Protocol parameters
    window_size: int = WINDOW_SIZE
    seq_space_size: Optional[int] = None  # 2 × W if None
    timeout: float = TIMEOUT
    max_pending: int = MAX_PENDING_ITEMS
    tick_interval: float = TICK_INTERVAL

    # Channel parameters
    loss_probability: float = LOSS_PROBABILITY
    max_delay: float = MAX_DELAY
    burst_loss: bool = False

    # Data parameters
    num_items: int = ITEMS_PER_RUN

    # Simulation parameters
    seed: int = RNG_SEED_BASE
    max_time: float = MAX_SIMULATION_TIME
    log_level: int = LogLevel.WARNING

    def get_seq_space_size(self) -> int:
        """Sequence space size, defaulting to the smallest unambiguous one."""
        if self.seq_space_size is not None:
            return self.seq_space_size
        return minimum_sequence_space(self.window_size)

    def to_protocol_config(self) -> ProtocolConfig:
        return ProtocolConfig(
            window_size=self.window_size,
            seq_space_size=self.get_seq_space_size(),
            timeout=self.timeout,
            max_pending=self.max_pending,
            tick_interval=self.tick_interval
        )


def generate_items(count: int) -> List[bytes]:
    """Demo-style payloads: the demo words tagged with their index."""
    return [
        f"{DEMO_DATA[i % len(DEMO_DATA)]}-{i}".encode('utf-8')
        for i in range(count)
    ]


class Simulator:
    """
    Virtual-time transfer simulator.

    Owns the scheduler, the lossy channel and the session. Items are fed
    into the session as the pending queue frees up, so the application
    never sees a refused enqueue.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        self.logger = SimulationLogger(
            name="Sim",
            level=config.log_level
        )

        self.scheduler = EventScheduler()

        forward_loss = reverse_loss = None
        if config.burst_loss:
            forward_loss = GilbertElliottLoss(seed=config.seed)
            reverse_loss = GilbertElliottLoss(seed=config.seed + 1000)

        self.channel = LossyChannel(
            clock=self.scheduler.time,
            loss_probability=config.loss_probability,
            max_delay=config.max_delay,
            seed=config.seed,
            forward_loss=forward_loss,
            reverse_loss=reverse_loss,
            logger=self.logger
        )

        self.session = ProtocolSession(
            config=config.to_protocol_config(),
            channel=self.channel,
            scheduler=self.scheduler,
            logger=self.logger,
            on_data_delivered=self._on_data_delivered
        )

        # Data tracking
        self.items: List[bytes] = []
        self.next_item = 0
        self.received: List[bytes] = []
        self.completion_time: Optional[float] = None

    def _on_data_delivered(self, payload: bytes, seq_num: int):
        self.received.append(payload)
        if len(self.received) == len(self.items):
            self.completion_time = self.scheduler.now

    def _feed(self):
        """Offer items while the pending queue has room, then re-arm."""
        pending = self.session.sender.pending
        while self.next_item < len(self.items) and not pending.is_full:
            self.session.enqueue(self.items[self.next_item])
            self.next_item += 1

        if self.next_item < len(self.items):
            self.scheduler.call_later(self.config.tick_interval, self._feed)

    def _is_complete(self) -> bool:
        return self.completion_time is not None

    def run(self, items: Optional[Sequence[Union[bytes, str]]] = None) -> Dict:
        """
        Run the transfer.

        Args:
            items: Payloads to send (demo-style payloads if None)

        Returns:
            Dictionary with results
        """
        if items is None:
            items = generate_items(self.config.num_items)
        self.items = [
            item.encode('utf-8') if isinstance(item, str) else bytes(item)
            for item in items
        ]

        sim_start_real = time.time()

        if not self.items:
            self.completion_time = 0.0

        self.session.start()
        self._feed()

        step = self.config.tick_interval
        while not self._is_complete() and self.scheduler.now < self.config.max_time:
            self.scheduler.run_until(min(self.scheduler.now + step, self.config.max_time))

        if not self._is_complete():
            self.logger.error(
                f"Time limit {self.config.max_time}s reached with "
                f"{len(self.received)}/{len(self.items)} items delivered",
                "SIM"
            )

        self.session.stop()
        sim_end_real = time.time()

        stats = self.session.get_statistics()
        data_sent = stats['channel']['data_sent']
        efficiency = len(self.received) / data_sent if data_sent > 0 else 0.0

        return {
            'config': {
                'window_size': self.config.window_size,
                'seq_space_size': self.config.get_seq_space_size(),
                'timeout': self.config.timeout,
                'loss_probability': self.config.loss_probability,
                'burst_loss': self.config.burst_loss,
                'num_items': len(self.items),
                'seed': self.config.seed
            },
            'complete': self._is_complete(),
            'delivered_valid': self.received == self.items,
            'delivered_items': len(self.received),
            'simulation_time': (self.completion_time
                                if self._is_complete() else self.scheduler.now),
            'efficiency': efficiency,
            'real_time': sim_end_real - sim_start_real,
            'stats': stats
        }
