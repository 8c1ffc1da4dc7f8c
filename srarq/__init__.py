"""
srarq - Selective Repeat ARQ over an unreliable datagram channel.

Contains:
- Protocol engines (sender, receiver, timers, packet codec)
- Channel abstraction and simulated lossy channels
- Protocol session orchestrator
"""

from .session import ProtocolConfig, ProtocolSession, SessionStatus, Endpoint

__all__ = [
    'ProtocolConfig',
    'ProtocolSession',
    'SessionStatus',
    'Endpoint'
]
