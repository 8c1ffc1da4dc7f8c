"""
Gilbert-Elliott Burst Loss Model

This module implements the two-state Markov chain model for simulating
bursty packet loss. The channel alternates between a "Good" state (rare
loss) and a "Bad" state (frequent loss), so losses cluster together.
"""

import numpy as np
from enum import Enum
from typing import Tuple, List, Optional

from config import (
    GOOD_STATE_LOSS, BAD_STATE_LOSS,
    P_GOOD_TO_BAD, P_BAD_TO_GOOD
)
from .lossy import LossModel


class ChannelState(Enum):
    """Channel state enumeration."""
    GOOD = 0
    BAD = 1


class GilbertElliottLoss(LossModel):
    """
    Gilbert-Elliott two-state Markov loss model.

    The model transitions between Good and Bad states once per packet.
    Each state has its own packet loss probability.

    Attributes:
        lg: Loss probability in Good state
        lb: Loss probability in Bad state
        p_gb: Transition probability from Good to Bad
        p_bg: Transition probability from Bad to Good
        state: Current channel state
        rng: Random number generator
    """

    def __init__(
        self,
        lg: float = GOOD_STATE_LOSS,
        lb: float = BAD_STATE_LOSS,
        p_gb: float = P_GOOD_TO_BAD,
        p_bg: float = P_BAD_TO_GOOD,
        seed: Optional[int] = None
    ):
        """
        Initialize the Gilbert-Elliott loss model.

        Args:
            lg: Loss probability in Good state (default from config)
            lb: Loss probability in Bad state (default from config)
            p_gb: Probability of transitioning from Good to Bad
            p_bg: Probability of transitioning from Bad to Good
            seed: Random seed for reproducibility
        """
        for name, value in (('lg', lg), ('lb', lb), ('p_gb', p_gb), ('p_bg', p_bg)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if p_gb + p_bg == 0:
            raise ValueError("At least one transition probability must be positive")

        self.lg = lg
        self.lb = lb
        self.p_gb = p_gb
        self.p_bg = p_bg

        self.rng = np.random.default_rng(seed)

        # Start in steady-state (probabilistically)
        self._initialize_state()
        self._reset_statistics()

    def _reset_statistics(self):
        self.total_packets = 0
        self.total_dropped = 0
        self.state_transitions = 0
        self.time_in_good = 0
        self.time_in_bad = 0

    def _initialize_state(self):
        """Initialize channel state based on steady-state probabilities."""
        pi_good, _ = self.get_steady_state_probabilities()
        if self.rng.random() < pi_good:
            self.state = ChannelState.GOOD
        else:
            self.state = ChannelState.BAD

    def get_steady_state_probabilities(self) -> Tuple[float, float]:
        """
        Calculate steady-state probabilities for Good and Bad states.

        Returns:
            Tuple of (π_Good, π_Bad)
        """
        sum_transitions = self.p_gb + self.p_bg
        pi_good = self.p_bg / sum_transitions
        pi_bad = self.p_gb / sum_transitions
        return pi_good, pi_bad

    def get_average_loss(self) -> float:
        """
        Calculate average loss based on steady-state probabilities.

        Returns:
            Average packet loss probability
        """
        pi_good, pi_bad = self.get_steady_state_probabilities()
        return pi_good * self.lg + pi_bad * self.lb

    def get_current_loss(self) -> float:
        """Get the loss probability for the current channel state."""
        return self.lg if self.state == ChannelState.GOOD else self.lb

    def transition_state(self):
        """Perform a state transition based on transition probabilities."""
        if self.state == ChannelState.GOOD:
            self.time_in_good += 1
            if self.rng.random() < self.p_gb:
                self.state = ChannelState.BAD
                self.state_transitions += 1
        else:
            self.time_in_bad += 1
            if self.rng.random() < self.p_bg:
                self.state = ChannelState.GOOD
                self.state_transitions += 1

    def should_drop(self) -> bool:
        """
        Decide the fate of one packet, then step the Markov chain.

        Returns:
            True if the packet is lost
        """
        dropped = self.rng.random() < self.get_current_loss()

        self.total_packets += 1
        if dropped:
            self.total_dropped += 1

        self.transition_state()
        return dropped

    def reset(self, seed: Optional[int] = None):
        """
        Reset model state and statistics.

        Args:
            seed: New random seed (optional)
        """
        self.rng = np.random.default_rng(seed)
        self._initialize_state()
        self._reset_statistics()

    def get_statistics(self) -> dict:
        """Get loss statistics."""
        observed = (self.total_dropped / self.total_packets
                    if self.total_packets > 0 else 0.0)
        return {
            'model': 'gilbert_elliott',
            'total_packets': self.total_packets,
            'total_dropped': self.total_dropped,
            'observed_loss': observed,
            'theoretical_avg_loss': self.get_average_loss(),
            'state_transitions': self.state_transitions,
            'time_in_good': self.time_in_good,
            'time_in_bad': self.time_in_bad,
            'current_state': self.state.name
        }


def simulate_loss_pattern(model: LossModel, num_packets: int) -> List[bool]:
    """
    Draw a loss pattern from a model.

    Args:
        model: Loss model
        num_packets: Number of packets to offer

    Returns:
        List of booleans (True = lost)
    """
    return [model.should_drop() for _ in range(num_packets)]


def analyze_burst_lengths(loss_pattern: List[bool]) -> dict:
    """
    Analyze burst lengths in a loss pattern.

    Args:
        loss_pattern: List of loss indicators

    Returns:
        Dictionary with burst statistics
    """
    bursts = []
    current_burst = 0

    for lost in loss_pattern:
        if lost:
            current_burst += 1
        elif current_burst > 0:
            bursts.append(current_burst)
            current_burst = 0

    if current_burst > 0:
        bursts.append(current_burst)

    if not bursts:
        return {
            'num_bursts': 0,
            'avg_burst_length': 0.0,
            'max_burst_length': 0,
            'total_lost': 0
        }

    return {
        'num_bursts': len(bursts),
        'avg_burst_length': float(np.mean(bursts)),
        'max_burst_length': max(bursts),
        'total_lost': sum(bursts)
    }
