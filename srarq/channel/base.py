"""
Channel Abstraction

The protocol engines send bytes into a channel and the session pulls
arrived bytes out of it on every tick. Loss, delay and reordering policy
belong entirely to the channel implementation.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator


class Origin(Enum):
    """Which endpoint put a message on the channel."""
    SENDER = "sender"
    RECEIVER = "receiver"

    @property
    def destination(self) -> "Origin":
        """The opposite endpoint."""
        return Origin.RECEIVER if self is Origin.SENDER else Origin.SENDER


class Channel(ABC):
    """
    Best-effort message channel between the two protocol endpoints.

    Implementations may silently drop, delay and reorder messages but must
    not corrupt them.
    """

    @abstractmethod
    def send(self, data: bytes, origin: Origin) -> None:
        """
        Hand a message to the channel. Never blocks, may silently drop.

        Args:
            data: Encoded packet
            origin: Endpoint that sent it
        """

    @abstractmethod
    def drain_arrived(self) -> Iterator[bytes]:
        """
        Collect every message whose arrival has occurred since the last call.

        The order is arbitrary but stable. Messages sent while the returned
        iterator is being consumed belong to a later call.
        """
