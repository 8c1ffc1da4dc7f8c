"""
Send Buffer Management

This module provides the bounded queue holding application items that
have been accepted but not yet assigned a sequence number.
"""

from collections import deque
from typing import Optional


class SendBuffer:
    """
    Bounded FIFO of pending send items.

    Refusing an item is the sender's backpressure signal: the caller must
    retry later or drop it.

    Attributes:
        max_items: Maximum number of pending items
        buffer: Queue of pending items
        total_bytes: Bytes currently pending
    """

    def __init__(self, max_items: int):
        """
        Initialize send buffer.

        Args:
            max_items: Maximum number of items to buffer
        """
        self.max_items = max_items
        self.buffer: deque[bytes] = deque()
        self.total_bytes = 0

        # Statistics
        self.total_accepted = 0
        self.total_rejected = 0

    def add(self, data: bytes) -> bool:
        """
        Add data to send buffer.

        Args:
            data: Item payload

        Returns:
            True if added, False if full (nothing is modified)
        """
        if len(self.buffer) >= self.max_items:
            self.total_rejected += 1
            return False

        self.buffer.append(data)
        self.total_bytes += len(data)
        self.total_accepted += 1
        return True

    def get(self) -> Optional[bytes]:
        """
        Get next item from buffer.

        Returns:
            Item bytes or None if empty
        """
        if not self.buffer:
            return None

        data = self.buffer.popleft()
        self.total_bytes -= len(data)
        return data

    @property
    def is_empty(self) -> bool:
        return len(self.buffer) == 0

    @property
    def is_full(self) -> bool:
        return len(self.buffer) >= self.max_items

    @property
    def count(self) -> int:
        """Get number of items in buffer."""
        return len(self.buffer)

    def clear(self):
        """Clear the buffer."""
        self.buffer.clear()
        self.total_bytes = 0
