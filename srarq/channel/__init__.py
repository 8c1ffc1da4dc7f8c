"""
Channel package - Datagram channel abstraction and simulated channels.

Contains implementations for:
- Channel interface (send / drain arrived)
- Lossy, delaying in-memory channel
- Gilbert-Elliot burst loss model
"""

from .base import Channel, Origin
from .lossy import LossyChannel, LossModel, BernoulliLoss
from .gilbert_elliot import GilbertElliottLoss, ChannelState

__all__ = [
    'Channel',
    'Origin',
    'LossyChannel',
    'LossModel',
    'BernoulliLoss',
    'GilbertElliottLoss',
    'ChannelState'
]
