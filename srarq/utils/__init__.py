"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Pending item buffer
- Logging utilities
"""

from .buffer import SendBuffer
from .logger import SimulationLogger, LogLevel, get_logger, set_logger

__all__ = [
    'SendBuffer',
    'SimulationLogger',
    'LogLevel',
    'get_logger',
    'set_logger'
]
