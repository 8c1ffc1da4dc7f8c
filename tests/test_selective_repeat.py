"""
Unit tests for the Selective Repeat ARQ sender and receiver.
"""

import itertools

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.arq.errors import BackpressureRejected, OutOfWindowAcknowledgment
from srarq.arq.frame import Packet
from srarq.arq.sender import SRSender, SendWindow
from srarq.arq.receiver import SRReceiver
from srarq.channel.base import Origin


def make_sender(channel, scheduler, logger, window_size=4, seq_space_size=8,
                max_pending=10, timeout=1.0):
    return SRSender(
        window_size=window_size,
        seq_space_size=seq_space_size,
        timeout=timeout,
        max_pending=max_pending,
        channel=channel,
        scheduler=scheduler,
        logger=logger
    )


def make_receiver(channel, logger, window_size=4, seq_space_size=8, **kwargs):
    return SRReceiver(
        window_size=window_size,
        seq_space_size=seq_space_size,
        channel=channel,
        logger=logger,
        **kwargs
    )


class TestSendWindow:
    """Tests for SendWindow class."""

    def test_offset_across_wrap(self):
        window = SendWindow(base=6, next_seq=2, size=4, max_seq=8)

        assert window.in_flight == 4
        assert window.is_full
        assert window.offset(1) == 3

    def test_offset_rejects_outside(self):
        window = SendWindow(base=2, next_seq=6, size=4, max_seq=8)

        with pytest.raises(OutOfWindowAcknowledgment) as excinfo:
            window.offset(1)
        assert excinfo.value.base == 2

    def test_offset_rejects_outside_space(self):
        window = SendWindow(base=0, next_seq=4, size=4, max_seq=8)

        # 9 % 8 == 1 would land inside the window
        with pytest.raises(OutOfWindowAcknowledgment):
            window.offset(9)

    def test_sequence_numbers_wrap(self):
        window = SendWindow(base=0, next_seq=7, size=4, max_seq=8)
        assert window.get_next_seq() == 7
        assert window.next_seq == 0


class TestSRSender:
    """Tests for SRSender class."""

    def test_enqueue_sends_immediately(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)

        assert sender.enqueue(b"a")
        assert channel.data_seqs() == [0]
        assert sender.window.next_seq == 1
        assert sender.timer_manager.is_active(0)

    def test_string_items_are_utf8(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue("héllo")

        assert channel.sent_packets()[0].payload == "héllo".encode('utf-8')

    def test_window_bound(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        for i in range(6):
            assert sender.enqueue(f"item-{i}")

        assert channel.data_seqs() == [0, 1, 2, 3]
        assert sender.outstanding.size == 4
        assert sender.pending.count == 2
        assert not sender.can_send()

    def test_ack_slides_and_drains(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        for i in range(6):
            sender.enqueue(f"item-{i}")

        assert sender.on_acknowledgment(0)
        assert sender.window.base == 1
        assert channel.data_seqs() == [0, 1, 2, 3, 4]

        # Out of order: held until 1 arrives
        assert sender.on_acknowledgment(2)
        assert sender.window.base == 1
        assert channel.data_seqs() == [0, 1, 2, 3, 4]

        assert sender.on_acknowledgment(1)
        assert sender.window.base == 3
        assert channel.data_seqs() == [0, 1, 2, 3, 4, 5]
        assert not sender.timer_manager.is_active(2)

    def test_duplicate_ack_ignored(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")
        sender.enqueue(b"b")

        assert sender.on_acknowledgment(1)
        assert not sender.on_acknowledgment(1)
        assert sender.acks_ignored == 1
        assert sender.window.base == 0

    def test_ack_for_unsent_ignored(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")

        # Inside [base, base + W) but never transmitted
        assert not sender.on_acknowledgment(3)
        assert sender.get_window_state()['acknowledged'] == []

    def test_wraparound_acknowledgment(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        for i in range(6):
            sender.enqueue(f"first-{i}")
        for seq in range(6):
            assert sender.on_acknowledgment(seq)
        assert sender.window.base == 6

        for i in range(4):
            sender.enqueue(f"second-{i}")
        assert channel.data_seqs()[-4:] == [6, 7, 0, 1]

        # Base 6, W=4: the window is {6, 7, 0, 1}
        assert sender.on_acknowledgment(1)
        assert sender.window.base == 6

        for seq in (6, 7, 0):
            assert sender.on_acknowledgment(seq)
        assert sender.window.base == 2

        # Base 2: ACK 1 is behind the window
        assert not sender.on_acknowledgment(1)

    def test_window_ending_at_space_boundary(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        for i in range(4):
            sender.enqueue(f"first-{i}")
        for seq in range(4):
            assert sender.on_acknowledgment(seq)
        assert sender.window.base == 4

        for i in range(5):
            sender.enqueue(f"second-{i}")
        assert channel.data_seqs()[-4:] == [4, 5, 6, 7]

        # Base 4, W=4: base + W == S, so 0 is outside the window
        assert sender.on_acknowledgment(7)
        assert not sender.on_acknowledgment(0)
        assert sender.window.base == 4

    def test_ack_outside_space_ignored(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")
        sender.enqueue(b"b")

        assert not sender.on_acknowledgment(9)
        assert sender.acks_ignored == 1
        assert sender.get_window_state()['acknowledged'] == []

    def test_backpressure(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger, window_size=1, max_pending=2)
        assert sender.enqueue(b"a")
        assert sender.enqueue(b"b")
        assert sender.enqueue(b"c")

        before = sender.get_window_state()
        assert not sender.enqueue(b"d")
        assert sender.get_window_state() == before
        assert sender.pending.count == 2
        assert channel.data_seqs() == [0]

        with pytest.raises(BackpressureRejected):
            sender.enqueue(b"e", strict=True)

    def test_timeout_retransmits(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")
        sender.enqueue(b"b")
        sender.on_acknowledgment(0)

        scheduler.advance(1.0)
        assert channel.data_seqs() == [0, 1, 1]
        assert sender.retransmissions == 1

        scheduler.advance(1.0)
        assert channel.data_seqs() == [0, 1, 1, 1]
        assert sender.timer_manager.get_timer(1).restarts == 2

    def test_retransmission_is_identical(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"payload")
        scheduler.advance(1.0)

        first, second = channel.sent
        assert first == second

    def test_shutdown(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")

        sender.shutdown()
        sender.shutdown()
        scheduler.advance(5.0)

        assert channel.data_seqs() == [0]
        assert not sender.enqueue(b"b")
        assert not sender.on_acknowledgment(0)
        assert scheduler.pending_count == 0

    def test_receive_ack_ignores_data(self, channel, scheduler, logger):
        sender = make_sender(channel, scheduler, logger)
        sender.enqueue(b"a")

        assert not sender.receive_ack(Packet.data(0, b"a"))
        assert sender.receive_ack(Packet.ack(0))
        assert sender.window.base == 1


class TestSRReceiver:
    """Tests for SRReceiver class."""

    def test_receive_in_order(self, channel, logger):
        receiver = make_receiver(channel, logger)
        for seq in range(3):
            receiver.receive_packet(Packet.data(seq, f"p{seq}".encode()))

        assert receiver.delivered_log == [b"p0", b"p1", b"p2"]
        assert receiver.expected_seq == 3
        assert channel.ack_seqs() == [0, 1, 2]

    def test_receive_out_of_order(self, channel, logger):
        receiver = make_receiver(channel, logger)

        ack = receiver.receive_packet(Packet.data(2, b"p2"))
        assert ack == Packet.ack(2)
        assert receiver.delivered_log == []

        receiver.receive_packet(Packet.data(1, b"p1"))
        assert receiver.get_window_state()['buffered'] == [1, 2]

        receiver.receive_packet(Packet.data(0, b"p0"))
        assert receiver.delivered_log == [b"p0", b"p1", b"p2"]
        assert receiver.expected_seq == 3
        assert receiver.buffer == {}

    def test_any_arrival_order(self, channel, logger):
        for order in itertools.permutations(range(4)):
            receiver = make_receiver(channel, logger)
            for seq in order:
                receiver.receive_packet(Packet.data(seq, bytes([seq])))

            assert receiver.delivered_log == [b"\x00", b"\x01", b"\x02", b"\x03"]
            assert receiver.expected_seq == 4

    def test_duplicate_of_delivered(self, channel, logger):
        receiver = make_receiver(channel, logger)
        receiver.receive_packet(Packet.data(0, b"p0"))

        receiver.receive_packet(Packet.data(0, b"p0"))
        assert receiver.delivered_log == [b"p0"]
        assert receiver.expected_seq == 1
        assert channel.ack_seqs() == [0, 0]
        assert receiver.duplicate_packets == 1

    def test_duplicate_of_buffered(self, channel, logger):
        receiver = make_receiver(channel, logger)
        receiver.receive_packet(Packet.data(1, b"p1"))
        receiver.receive_packet(Packet.data(1, b"p1"))

        assert receiver.duplicate_packets == 1
        assert receiver.out_of_order_packets == 1
        assert channel.ack_seqs() == [1, 1]

    def test_beyond_window_not_buffered(self, channel, logger):
        receiver = make_receiver(channel, logger)
        receiver.receive_packet(Packet.data(5, b"p5"))

        assert receiver.buffer == {}
        assert channel.ack_seqs() == [5]

    def test_outside_space_dropped(self, channel, logger):
        receiver = make_receiver(channel, logger)

        assert receiver.receive_packet(Packet.data(9, b"bogus")) is None
        assert receiver.buffer == {}
        assert channel.sent == []

        for seq in range(8):
            receiver.receive_packet(Packet.data(seq, f"p{seq}".encode()))

        assert receiver.expected_seq == 0
        assert receiver.buffer == {}
        assert len(receiver.delivered_log) == 8
        assert receiver.get_statistics()['out_of_range_packets'] == 1

    def test_expected_wraps(self, channel, logger):
        receiver = make_receiver(channel, logger, window_size=2, seq_space_size=4)
        for i, seq in enumerate([0, 1, 2, 3, 0]):
            receiver.receive_packet(Packet.data(seq, f"p{i}".encode()))

        assert receiver.expected_seq == 1
        assert len(receiver.delivered_log) == 5

    def test_out_of_order_across_wrap(self, channel, logger):
        receiver = make_receiver(channel, logger)
        for seq in range(6):
            receiver.receive_packet(Packet.data(seq, f"a{seq}".encode()))

        receiver.receive_packet(Packet.data(0, b"b0"))
        receiver.receive_packet(Packet.data(7, b"a7"))
        assert receiver.expected_seq == 6

        receiver.receive_packet(Packet.data(6, b"a6"))
        assert receiver.expected_seq == 1
        assert receiver.delivered_log[-3:] == [b"a6", b"a7", b"b0"]

    def test_ack_packets_ignored(self, channel, logger):
        receiver = make_receiver(channel, logger)

        assert receiver.receive_packet(Packet.ack(0)) is None
        assert channel.sent == []

    def test_delivery_callback(self, channel, logger):
        delivered = []
        receiver = make_receiver(
            channel, logger,
            on_data_delivered=lambda payload, seq: delivered.append((seq, payload))
        )
        receiver.receive_packet(Packet.data(1, b"b"))
        receiver.receive_packet(Packet.data(0, b"a"))

        assert delivered == [(0, b"a"), (1, b"b")]

    def test_snapshot_is_a_copy(self, channel, logger):
        receiver = make_receiver(channel, logger)
        receiver.receive_packet(Packet.data(0, b"a"))

        expected, delivered = receiver.snapshot()
        delivered.append(b"tampered")

        assert expected == 1
        assert receiver.delivered_log == [b"a"]

    def test_acks_sent_from_receiver(self, channel, logger):
        receiver = make_receiver(channel, logger)
        receiver.receive_packet(Packet.data(0, b"a"))

        assert channel.sent[0][1] is Origin.RECEIVER


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
