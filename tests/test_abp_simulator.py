"""
Unit tests for the Alternating Bit Protocol simulator.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.channel.bit_error import BitErrorChannel, FrameOutcome, TransmissionResult
from src.abp import timing
from src.abp.errors import ConfigurationError, EventOrderError, NoProgressError
from src.abp.events import AckEvent, PendingAckQueue, TraceKind
from src.abp.state import SenderState, ReceiverState
from simulation.simulator import ABPSimulator, SimulationParameters


CLEAN = TransmissionResult(FrameOutcome.CLEAN, 0)
LOST = TransmissionResult(FrameOutcome.LOST, 5)


def corrupted(bits=1):
    return TransmissionResult(FrameOutcome.CORRUPTED, bits)


class ScriptedChannel(BitErrorChannel):
    """Channel replaying a fixed list of outcomes, then staying clean."""

    def __init__(self, outcomes):
        super().__init__(0.0)
        self.outcomes = list(outcomes)

    def transmit(self, frame_length_bits):
        self.frames_transmitted += 1
        if self.outcomes:
            return self.outcomes.pop(0)
        return CLEAN


def small_link(**overrides):
    """8-bit header, 80-bit packet, 1 kbps, 5 ms propagation, 1 s timeout."""
    values = dict(
        ack_nak=False,
        header_length=8,
        packet_length=80,
        timeout=1000.0,
        channel_capacity=1000,
        propagation_delay=5.0,
        bit_error_rate=0.0
    )
    values.update(overrides)
    return SimulationParameters(**values)


class TestFrameTiming:
    """Tests for timing arithmetic."""

    def test_transmission_delay(self):
        """Test Tx = 1000 * bits / C."""
        assert timing.transmission_delay(88, 1000) == pytest.approx(88.0)
        assert timing.transmission_delay(12432, 5_000_000) == pytest.approx(2.4864)

    def test_ack_arrival_time(self):
        """Test that both frames are charged serially plus 2 * TAU."""
        arrival = timing.ack_arrival_time(100.0, 88, 8, 1000, 5.0)

        assert arrival == pytest.approx(100.0 + 96.0 + 10.0)

    def test_timeout_deadline(self):
        """Test that the timer starts after the data frame is sent."""
        assert timing.timeout_deadline(0.0, 88, 1000, 1000.0) == pytest.approx(1088.0)

    def test_round_duration(self):
        """Test the error-free exchange duration."""
        assert timing.round_duration(8, 80, 1000, 5.0) == pytest.approx(106.0)


class TestProtocolState:
    """Tests for sender and receiver state."""

    def test_sender_initial_state(self):
        """Test sender starts with sn=0 and expects RN=1."""
        sender = SenderState()

        assert sender.sn == 0
        assert sender.next_expected_ack == 1
        assert sender.current_time == 0.0

    def test_sender_toggles_together(self):
        """Test that sn and next_expected_ack always flip together."""
        sender = SenderState()

        for _ in range(5):
            sender.accept_ack()
            assert sender.next_expected_ack == 1 - sender.sn

    def test_sender_clock_cannot_go_back(self):
        """Test that the sender clock is monotonic."""
        sender = SenderState()
        sender.advance_to(50.0)

        with pytest.raises(EventOrderError):
            sender.advance_to(10.0)

    def test_receiver_accepts_in_sequence(self):
        """Test receiver accepts a clean frame with the expected SN."""
        receiver = ReceiverState()

        assert receiver.receive(0, clean=True)
        assert receiver.next_expected_frame == 1

    def test_receiver_rejects_duplicate(self):
        """Test that a clean duplicate does not advance the receiver."""
        receiver = ReceiverState()
        receiver.receive(0, clean=True)

        assert not receiver.receive(0, clean=True)
        assert receiver.next_expected_frame == 1
        assert receiver.duplicates == 1
        assert receiver.frames_accepted == 1

    def test_receiver_ignores_corrupted(self):
        """Test that a corrupted frame changes nothing."""
        receiver = ReceiverState()

        assert not receiver.receive(0, clean=False)
        assert receiver.next_expected_frame == 0
        assert receiver.duplicates == 0


class TestPendingAckQueue:
    """Tests for the in-flight ACK queue."""

    def test_fifo_order(self):
        """Test that events come out in arrival order."""
        queue = PendingAckQueue()
        queue.push(AckEvent(rn=1, error=False, time=10.0))
        queue.push(AckEvent(rn=0, error=True, time=20.0))

        assert queue.peek().time == 10.0
        assert queue.pop().rn == 1
        assert queue.pop().rn == 0
        assert not queue

    def test_equal_times_allowed(self):
        """Test that simultaneous arrivals keep the queue ordered."""
        queue = PendingAckQueue()
        queue.push(AckEvent(rn=1, error=False, time=10.0))
        queue.push(AckEvent(rn=1, error=False, time=10.0))

        assert len(queue) == 2
        assert queue.is_ordered()

    def test_out_of_order_push_rejected(self):
        """Test that an earlier arrival cannot be appended at the tail."""
        queue = PendingAckQueue()
        queue.push(AckEvent(rn=1, error=False, time=20.0))

        with pytest.raises(EventOrderError):
            queue.push(AckEvent(rn=0, error=False, time=5.0))


class TestSimulationParameters:
    """Tests for configuration validation."""

    @pytest.mark.parametrize("overrides", [
        {'channel_capacity': 0},
        {'channel_capacity': -5},
        {'bit_error_rate': 1.5},
        {'bit_error_rate': -0.01},
        {'bit_error_rate': float('nan')},
        {'header_length': 0},
        {'packet_length': 0},
        {'header_length': 8.5},
        {'packet_length': 80.0},
        {'packet_length': True},
        {'header_length': '8'},
        {'timeout': 0},
        {'propagation_delay': -1.0},
    ])
    def test_invalid_parameters(self, overrides):
        """Test that invalid parameters fail at construction."""
        with pytest.raises(ConfigurationError):
            small_link(**overrides)

    def test_configuration_error_is_value_error(self):
        """Test that callers can catch ValueError."""
        with pytest.raises(ValueError):
            small_link(channel_capacity=0)

    def test_derived_lengths(self):
        """Test data and ACK frame lengths."""
        params = small_link()

        assert params.data_frame_length == 88
        assert params.ack_frame_length == 8
        assert params.data_transmission_delay == pytest.approx(88.0)

    def test_parameters_are_immutable(self):
        """Test that parameters cannot be changed after construction."""
        params = small_link()

        with pytest.raises(AttributeError):
            params.timeout = 5.0


class TestErrorFreeRuns:
    """Tests for deterministic behaviour on a perfect channel."""

    def test_single_packet_scenario(self):
        """Test the 106 ms single-packet exchange."""
        sim = ABPSimulator(small_link(), seed=1)

        result = sim.run(1)

        assert result.elapsed_ms == pytest.approx(106.0)
        assert result.throughput == pytest.approx(754.72, abs=0.01)
        assert result.success_count == 1
        assert result.complete

    def test_simulate_returns_throughput(self):
        """Test that simulate() returns the throughput in bps."""
        sim = ABPSimulator(small_link(), seed=1)

        assert sim.simulate(1) == pytest.approx(80 / 0.106)

    def test_elapsed_time_scales_linearly(self):
        """Test that N packets take N error-free rounds."""
        sim = ABPSimulator(small_link(), seed=1)

        result = sim.run(10)

        assert result.rounds == 10
        assert result.success_count == 10
        assert result.elapsed_ms == pytest.approx(10 * 106.0)
        assert result.metrics['retransmissions'] == 0
        assert result.metrics['timeouts'] == 0

    def test_zero_target(self):
        """Test that a zero target finishes immediately."""
        result = ABPSimulator(small_link()).run(0)

        assert result.elapsed_ms == 0.0
        assert result.throughput == 0.0
        assert result.complete

    def test_negative_target(self):
        """Test that a negative target is rejected."""
        with pytest.raises(ConfigurationError):
            ABPSimulator(small_link()).run(-1)

    def test_late_ack_consumed_by_later_round(self):
        """Test that an ACK arriving after its deadline is used later."""
        # Deadline = send + 98 ms, ACK arrives at send + 106 ms
        sim = ABPSimulator(small_link(timeout=10.0), record_trace=True)

        result = sim.run(2)

        assert result.success_count == 2
        assert result.rounds == 4
        assert result.elapsed_ms == pytest.approx(212.0)
        assert result.metrics['timeouts'] == 2
        assert result.metrics['acks_ignored'] == 1
        assert result.metrics['duplicate_frames'] == 2

    def test_rerun_resets_state(self):
        """Test that consecutive runs start from a clean state."""
        sim = ABPSimulator(small_link())
        sim.run(3)

        result = sim.run(1)

        assert result.elapsed_ms == pytest.approx(106.0)
        assert sim.sender.sn == 1
        assert sim.receiver.next_expected_frame == 1


class TestLossyRuns:
    """Tests for timeout and retransmission behaviour."""

    def test_total_loss_detected(self):
        """Test that BER = 1 is reported as no progress."""
        sim = ABPSimulator(small_link(bit_error_rate=1.0), seed=5, max_idle_rounds=50)

        with pytest.raises(NoProgressError) as excinfo:
            sim.run(1)

        result = excinfo.value.result
        assert not result.complete
        assert result.success_count == 0
        assert result.rounds == 50
        assert result.elapsed_ms == pytest.approx(50 * 1088.0)
        assert result.metrics['timeouts'] == 50
        assert result.metrics['frames_lost'] == 50

    def test_time_ceiling(self):
        """Test the simulated-time ceiling."""
        sim = ABPSimulator(
            small_link(bit_error_rate=1.0),
            max_idle_rounds=None,
            max_time=5000.0
        )

        with pytest.raises(NoProgressError) as excinfo:
            sim.run(1)

        assert excinfo.value.result.rounds == 5

    def test_lost_frame_times_out(self):
        """Test that a lost data frame is retransmitted at the deadline."""
        sim = ABPSimulator(small_link(), channel=ScriptedChannel([LOST]))

        result = sim.run(1)

        assert result.elapsed_ms == pytest.approx(1088.0 + 106.0)
        assert result.metrics['frames_lost'] == 1
        assert result.metrics['ack_frames_sent'] == 1

    def test_lost_ack_times_out(self):
        """Test that a lost ACK still leaves the receiver advanced."""
        sim = ABPSimulator(small_link(), channel=ScriptedChannel([CLEAN, LOST]))

        result = sim.run(1)

        assert result.elapsed_ms == pytest.approx(1088.0 + 106.0)
        assert result.metrics['acks_lost'] == 1
        assert result.metrics['duplicate_frames'] == 1
        assert sim.receiver.next_expected_frame == 1

    def test_duplicate_frame_not_counted(self):
        """Test that a clean duplicate neither advances the receiver nor counts."""
        sim = ABPSimulator(small_link(), channel=ScriptedChannel([CLEAN, LOST]))
        sim.reset()

        first = sim.send(0.0, 0, 88)
        assert first is None
        assert sim.receiver.next_expected_frame == 1

        second = sim.send(1088.0, 0, 88)
        assert second.rn == 1
        assert sim.receiver.next_expected_frame == 1
        assert sim.receiver.duplicates == 1
        assert sim.success_count == 0


class TestAckModes:
    """Tests for plain ACK versus NAK-aware retransmission."""

    def _run(self, ack_nak, outcomes):
        sim = ABPSimulator(
            small_link(ack_nak=ack_nak),
            channel=ScriptedChannel(outcomes),
            record_trace=True
        )
        return sim.run(1)

    def test_corrupted_ack_plain_mode_waits_for_timeout(self):
        """Test that plain ACK mode ignores a corrupted ACK."""
        result = self._run(False, [CLEAN, corrupted(2)])

        assert result.elapsed_ms == pytest.approx(1088.0 + 106.0)
        assert result.metrics['acks_ignored'] == 1
        assert result.metrics['timeouts'] == 1
        assert result.metrics['nak_retransmissions'] == 0

    def test_corrupted_ack_nak_mode_retransmits_immediately(self):
        """Test that NAK mode retransmits at the corrupted ACK's arrival."""
        result = self._run(True, [CLEAN, corrupted(2)])

        assert result.elapsed_ms == pytest.approx(106.0 + 106.0)
        assert result.metrics['nak_retransmissions'] == 1
        assert result.metrics['timeouts'] == 0

    def test_stale_rn_plain_mode(self):
        """Test that an ACK repeating the old RN is discarded."""
        result = self._run(False, [corrupted(1), CLEAN])

        assert result.elapsed_ms == pytest.approx(1194.0)
        assert result.metrics['frames_corrupted'] == 1
        ignored = [e for e in result.trace if e.kind == TraceKind.ACK_IGNORED]
        assert len(ignored) == 1
        assert ignored[0].rn == 0

    def test_stale_rn_nak_mode(self):
        """Test that a mismatched RN acts as a NAK."""
        result = self._run(True, [corrupted(1), CLEAN])

        assert result.elapsed_ms == pytest.approx(212.0)
        naks = [e for e in result.trace if e.kind == TraceKind.NAK]
        assert len(naks) == 1
        assert naks[0].time == pytest.approx(106.0)

    @pytest.mark.parametrize("outcomes", [
        [CLEAN, corrupted(1)],
        [corrupted(3), CLEAN],
        [LOST],
        [CLEAN, LOST],
        [corrupted(2), corrupted(4), CLEAN, CLEAN],
    ])
    def test_nak_never_slower(self, outcomes):
        """Test that NAK mode finishes no later under identical outcomes."""
        plain = self._run(False, outcomes)
        nak = self._run(True, outcomes)

        assert nak.elapsed_ms <= plain.elapsed_ms


class TestInvariants:
    """Tests for protocol invariants over seeded lossy runs."""

    @pytest.mark.parametrize("ack_nak", [False, True])
    def test_sequence_invariant(self, ack_nak):
        """Test next_expected_ack == 1 - sn at every traced event."""
        sim = ABPSimulator(
            small_link(ack_nak=ack_nak, timeout=50.0, bit_error_rate=0.02),
            seed=7,
            record_trace=True
        )

        result = sim.run(200)

        assert result.complete
        assert all(e.next_expected_ack == 1 - e.sn for e in result.trace)
        accepted = [e for e in result.trace if e.kind == TraceKind.ACK_ACCEPTED]
        assert len(accepted) == 200

    @pytest.mark.parametrize("timeout", [5.0, 50.0, 1000.0])
    def test_queue_stays_ordered(self, timeout):
        """Test that queued arrival times never decrease."""
        sim = ABPSimulator(
            small_link(timeout=timeout, bit_error_rate=0.03),
            seed=13
        )
        original_push = sim.ack_queue.push

        def checked_push(event):
            original_push(event)
            assert sim.ack_queue.is_ordered()

        sim.ack_queue.push = checked_push

        result = sim.run(100)

        assert result.success_count == 100

    def test_same_seed_same_result(self):
        """Test that runs are reproducible from a seed."""
        params = small_link(bit_error_rate=0.02, timeout=50.0)

        first = ABPSimulator(params, seed=99).run(100)
        second = ABPSimulator(params, seed=99).run(100)

        assert first.elapsed_ms == second.elapsed_ms
        assert first.rounds == second.rounds


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
