"""
Unit tests for the lossy channel and the loss models.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.channel.base import Origin
from srarq.channel.lossy import LossyChannel, BernoulliLoss
from srarq.channel.gilbert_elliot import (
    GilbertElliottLoss, ChannelState,
    simulate_loss_pattern, analyze_burst_lengths
)


class TestBernoulliLoss:
    """Tests for BernoulliLoss class."""

    def test_invalid_probability(self):
        with pytest.raises(ValueError):
            BernoulliLoss(1.5)
        with pytest.raises(ValueError):
            BernoulliLoss(-0.1)

    def test_extremes(self):
        never = BernoulliLoss(0.0, seed=1)
        always = BernoulliLoss(1.0, seed=1)

        assert not any(never.should_drop() for _ in range(100))
        assert all(always.should_drop() for _ in range(100))

    def test_observed_rate(self):
        model = BernoulliLoss(0.3, seed=42)
        pattern = simulate_loss_pattern(model, 10000)

        assert 0.27 < sum(pattern) / len(pattern) < 0.33
        assert model.get_statistics()['total_packets'] == 10000

    def test_reset(self):
        model = BernoulliLoss(0.5, seed=3)
        first = simulate_loss_pattern(model, 50)

        model.reset(seed=3)
        assert model.get_statistics()['total_dropped'] == 0
        assert simulate_loss_pattern(model, 50) == first


class TestLossyChannel:
    """Tests for LossyChannel class."""

    def test_lossless_immediate_delivery(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=0.0, max_delay=0.0)
        channel.send(b"one", Origin.SENDER)
        channel.send(b"two", Origin.RECEIVER)

        assert list(channel.drain_arrived()) == [b"one", b"two"]
        assert list(channel.drain_arrived()) == []

    def test_delay_holds_packets(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=0.0, max_delay=0.2, seed=1)
        for i in range(20):
            channel.send(bytes([i]), Origin.SENDER)

        scheduler.advance(0.2)
        arrived = list(channel.drain_arrived())

        assert sorted(arrived) == [bytes([i]) for i in range(20)]
        assert channel.pending_count() == 0

    def test_nothing_arrives_before_its_time(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=0.0, max_delay=0.2, seed=1)
        scheduler.advance(1.0)
        channel.send(b"late", Origin.SENDER)

        scheduler.advance(0.0)
        early = list(channel.drain_arrived())
        scheduler.advance(0.2)
        late = list(channel.drain_arrived())

        assert early + late == [b"late"]

    def test_send_during_drain_waits_for_next_call(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=0.0, max_delay=0.0)
        channel.send(b"a", Origin.SENDER)

        seen = []
        for data in channel.drain_arrived():
            seen.append(data)
            channel.send(b"reply", Origin.RECEIVER)

        assert seen == [b"a"]
        assert list(channel.drain_arrived()) == [b"reply"]

    def test_total_loss(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=1.0, max_delay=0.0)
        for _ in range(10):
            channel.send(b"x", Origin.SENDER)

        assert list(channel.drain_arrived()) == []
        assert channel.get_statistics()['data_dropped'] == 10

    def test_directional_loss_models(self, scheduler):
        channel = LossyChannel(
            scheduler.time, max_delay=0.0,
            forward_loss=BernoulliLoss(1.0),
            reverse_loss=BernoulliLoss(0.0)
        )
        channel.send(b"data", Origin.SENDER)
        channel.send(b"ack", Origin.RECEIVER)

        assert list(channel.drain_arrived()) == [b"ack"]
        stats = channel.get_statistics()
        assert stats['data_dropped'] == 1
        assert stats['acks_delivered'] == 1

    def test_seeded_reproducibility(self, scheduler):
        def run(seed):
            channel = LossyChannel(scheduler.time, loss_probability=0.3, max_delay=0.0, seed=seed)
            for i in range(50):
                channel.send(bytes([i]), Origin.SENDER)
            return list(channel.drain_arrived())

        assert run(9) == run(9)

    def test_reset(self, scheduler):
        channel = LossyChannel(scheduler.time, loss_probability=0.0, max_delay=0.5, seed=2)
        channel.send(b"x", Origin.SENDER)

        channel.reset(seed=2)
        assert not channel.has_pending_packets()
        assert channel.get_statistics()['data_sent'] == 0

    def test_negative_delay_rejected(self, scheduler):
        with pytest.raises(ValueError):
            LossyChannel(scheduler.time, max_delay=-1.0)

    def test_origin_destination(self):
        assert Origin.SENDER.destination is Origin.RECEIVER
        assert Origin.RECEIVER.destination is Origin.SENDER


class TestGilbertElliottLoss:
    """Tests for Gilbert-Elliot loss model."""

    def test_initialization(self):
        model = GilbertElliottLoss(seed=42)

        assert model.lg == 0.01
        assert model.lb == 0.6
        assert model.p_gb == 0.05
        assert model.p_bg == 0.25
        assert model.state in [ChannelState.GOOD, ChannelState.BAD]

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            GilbertElliottLoss(lb=1.2)
        with pytest.raises(ValueError):
            GilbertElliottLoss(p_gb=0.0, p_bg=0.0)

    def test_steady_state_probabilities(self):
        model = GilbertElliottLoss()

        pi_good, pi_bad = model.get_steady_state_probabilities()

        assert abs(pi_good + pi_bad - 1.0) < 1e-10
        assert pi_good == pytest.approx(0.25 / 0.30)
        assert pi_bad == pytest.approx(0.05 / 0.30)

    def test_average_loss(self):
        model = GilbertElliottLoss()
        expected = (0.25 / 0.30) * 0.01 + (0.05 / 0.30) * 0.6

        assert model.get_average_loss() == pytest.approx(expected)

    def test_observed_loss_near_average(self):
        model = GilbertElliottLoss(seed=42)
        pattern = simulate_loss_pattern(model, 50000)

        observed = sum(pattern) / len(pattern)
        assert abs(observed - model.get_average_loss()) < 0.03

    def test_state_transitions(self):
        model = GilbertElliottLoss(seed=42)

        states_seen = set()
        for _ in range(1000):
            model.transition_state()
            states_seen.add(model.state)

        assert len(states_seen) == 2

    def test_losses_cluster(self):
        """Bursty loss yields longer runs than independent loss of the same rate."""
        bursty = analyze_burst_lengths(
            simulate_loss_pattern(GilbertElliottLoss(seed=7), 50000))
        rate = GilbertElliottLoss().get_average_loss()
        independent = analyze_burst_lengths(
            simulate_loss_pattern(BernoulliLoss(rate, seed=7), 50000))

        assert bursty['avg_burst_length'] > independent['avg_burst_length']

    def test_burst_analysis(self):
        pattern = [False, False, True, True, True, False, True, False]

        stats = analyze_burst_lengths(pattern)

        assert stats['num_bursts'] == 2
        assert stats['max_burst_length'] == 3
        assert stats['total_lost'] == 4

    def test_burst_analysis_no_loss(self):
        assert analyze_burst_lengths([False] * 5)['num_bursts'] == 0

    def test_reset(self):
        model = GilbertElliottLoss(seed=42)
        simulate_loss_pattern(model, 100)

        model.reset(seed=123)

        stats = model.get_statistics()
        assert stats['total_packets'] == 0
        assert stats['total_dropped'] == 0

    def test_reproducibility(self):
        first = simulate_loss_pattern(GilbertElliottLoss(seed=42), 200)
        second = simulate_loss_pattern(GilbertElliottLoss(seed=42), 200)

        assert first == second


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
