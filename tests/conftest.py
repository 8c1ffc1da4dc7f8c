"""
Shared fixtures for the selective repeat tests.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.arq.frame import Packet
from srarq.arq.timer import EventScheduler
from srarq.channel.base import Channel, Origin
from srarq.utils.logger import SimulationLogger, LogLevel


class RecordingChannel(Channel):
    """Channel that records every send and delivers only what a test feeds it."""

    def __init__(self):
        self.sent = []
        self.inbox = []

    def send(self, data, origin):
        self.sent.append((data, origin))

    def drain_arrived(self):
        arrived, self.inbox = self.inbox, []
        return iter(arrived)

    def sent_packets(self, origin=None):
        return [Packet.deserialize(data) for data, o in self.sent
                if origin is None or o is origin]

    def data_seqs(self):
        return [p.seq_num for p in self.sent_packets(Origin.SENDER)]

    def ack_seqs(self):
        return [p.seq_num for p in self.sent_packets(Origin.RECEIVER)]


@pytest.fixture
def scheduler():
    return EventScheduler()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def logger():
    return SimulationLogger(name="Test", level=LogLevel.CRITICAL, use_colors=False)
