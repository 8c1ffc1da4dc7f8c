"""
Protocol Logger

This module provides logging utilities for the protocol session,
with configurable verbosity levels and structured output.
"""

from typing import Callable, Optional, TextIO
from datetime import datetime
from enum import IntEnum
import os

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class SimulationLogger:
    """
    Logger for protocol events.

    Provides structured logging with timestamps and categories. When a
    clock is attached, lines are stamped with the session's (virtual) time
    instead of the wall clock.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "ARQ",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors in output
            include_timestamp: Include timestamps in log messages
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.file = open(log_file, 'w')

        # Session time source
        self.clock: Optional[Callable[[], float]] = None

        # Message counts
        self.message_counts = {level: 0 for level in LogLevel}

    def set_clock(self, clock: Optional[Callable[[], float]]):
        """Attach a time source used to stamp log lines."""
        self.clock = clock

    def set_level(self, level: int):
        """Set minimum log level."""
        self.level = level

    def is_enabled(self, level: int) -> bool:
        return level >= self.level

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        """Format a log message."""
        parts = []

        # Timestamp
        if self.include_timestamp:
            if self.clock is not None:
                parts.append(f"[{self.clock():10.6f}s]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        # Level
        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)

        parts.append(f"[{self.name}]")

        if category:
            parts.append(f"[{category}]")

        parts.append(message)

        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        """Log a message."""
        if level < self.level:
            return

        self.message_counts[level] += 1
        formatted = self._format_message(level, message, category)

        print(formatted)

        if self.file:
            # Strip color codes for file
            clean = formatted
            for color in self.COLORS.values():
                clean = clean.replace(color, '')
            clean = clean.replace(self.RESET, '')
            self.file.write(clean + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        """Log info message."""
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        """Log error message."""
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for protocol events
    def packet_sent(self, seq_num: int, packet_type: str, size: int):
        """Log packet sent event."""
        self.debug(f"Packet {seq_num} ({packet_type}) sent, size={size}B", "TX")

    def packet_received(self, seq_num: int, expected: int):
        """Log data packet arrival at the receiver."""
        self.debug(f"Packet {seq_num} received, expected {expected}", "RX")

    def ack_sent(self, ack_num: int):
        """Log ACK sent event."""
        self.debug(f"ACK {ack_num} sent", "ACK")

    def ack_received(self, ack_num: int):
        """Log ACK received event."""
        self.debug(f"ACK {ack_num} received", "ACK")

    def timeout(self, seq_num: int, retransmit_count: int):
        """Log timeout event."""
        self.warning(f"Timeout for packet {seq_num} (retx #{retransmit_count})", "TIMEOUT")

    def retransmit(self, seq_num: int):
        """Log retransmission event."""
        self.info(f"Retransmitting packet {seq_num}", "RETX")

    def delivered(self, seq_num: int, payload: bytes):
        """Log in-order delivery to the application."""
        self.debug(f"Delivered packet {seq_num}: {payload!r}", "DELIVER")

    def backpressure(self, pending: int, limit: int):
        """Log a refused enqueue."""
        self.warning(f"Send buffer full ({pending}/{limit}), item refused", "BUFFER")

    def window_update(self, base: int, next_seq: int, size: int):
        """Log window update."""
        self.debug(f"Window: base={base}, next={next_seq}, size={size}", "WINDOW")

    def malformed(self, reason: str):
        """Log an undecodable message."""
        self.warning(f"Discarded malformed frame: {reason}", "CODEC")

    def misrouted(self, reason: str):
        """Log a packet handed to the wrong engine."""
        self.warning(f"Protocol usage defect, packet ignored: {reason}", "ROUTING")

    def session_start(self, params: dict):
        """Log session start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Session started: {param_str}", "SESSION")

    def session_stop(self, delivered: int):
        """Log session stop."""
        self.info(f"Session stopped: {delivered} items delivered", "SESSION")

    def get_summary(self) -> dict:
        """Get logging summary."""
        return {
            'message_counts': dict(self.message_counts),
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        """Cleanup on deletion."""
        self.close()


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: SimulationLogger):
    """Set global logger instance."""
    global _global_logger
    _global_logger = logger
