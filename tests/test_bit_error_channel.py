"""
Unit tests for the independent bit error channel model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.channel.bit_error import BitErrorChannel, FrameOutcome, TransmissionResult


class ScriptedDraws:
    """Draw source replaying fixed values, then returning ``fill`` forever."""

    def __init__(self, values, fill=0.999999):
        self.values = list(values)
        self.fill = fill
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.fill


class TestBitErrorChannel:
    """Tests for per-bit error sampling."""

    def test_error_free_channel(self):
        """Test that BER = 0 never corrupts and draws nothing."""
        draws = ScriptedDraws([])
        channel = BitErrorChannel(0.0, rng=draws)

        result = channel.transmit(12432)

        assert result.outcome == FrameOutcome.CLEAN
        assert result.error_bits == 0
        assert draws.calls == 0

    def test_clean_frame(self):
        """Test that draws above the BER leave the frame clean."""
        channel = BitErrorChannel(0.5, rng=ScriptedDraws([], fill=0.9))

        result = channel.transmit(16)

        assert result.is_clean
        assert channel.bits_sampled == 16

    def test_corrupted_frame(self):
        """Test that 1-4 bit errors flag the frame as corrupted."""
        draws = ScriptedDraws([0.1, 0.9, 0.1, 0.9, 0.1], fill=0.9)
        channel = BitErrorChannel(0.5, rng=draws)

        result = channel.transmit(10)

        assert result.outcome == FrameOutcome.CORRUPTED
        assert result.error_bits == 3
        assert draws.calls == 10

    def test_four_errors_still_delivered(self):
        """Test the boundary just below the loss threshold."""
        channel = BitErrorChannel(0.5, rng=ScriptedDraws([0.1] * 4, fill=0.9))

        result = channel.transmit(50)

        assert result.is_corrupted
        assert result.error_bits == 4

    def test_loss_stops_early(self):
        """Test that the fifth error loses the frame and stops sampling."""
        draws = ScriptedDraws([], fill=0.1)
        channel = BitErrorChannel(0.5, rng=draws)

        result = channel.transmit(100)

        assert result.is_lost
        assert result.error_bits == 5
        assert draws.calls == 5
        assert channel.bits_sampled == 5

    def test_total_loss(self):
        """Test that BER = 1 loses every frame of at least 5 bits."""
        channel = BitErrorChannel(1.0, seed=42)

        results = [channel.transmit(88) for _ in range(20)]

        assert all(r.is_lost for r in results)
        assert channel.lost_frames == 20

    def test_short_frame_with_total_error(self):
        """Test that a 4-bit frame at BER = 1 is corrupted, not lost."""
        channel = BitErrorChannel(1.0, seed=42)

        result = channel.transmit(4)

        assert result == TransmissionResult(FrameOutcome.CORRUPTED, 4)

    def test_invalid_bit_error_rate(self):
        """Test that a BER outside [0, 1] is rejected."""
        with pytest.raises(ValueError):
            BitErrorChannel(1.5)
        with pytest.raises(ValueError):
            BitErrorChannel(-0.1)
        with pytest.raises(ValueError):
            BitErrorChannel(float('nan'))

    def test_reproducibility(self):
        """Test that same seed produces same results."""
        channel1 = BitErrorChannel(0.02, seed=42)
        channel2 = BitErrorChannel(0.02, seed=42)

        results1 = [channel1.transmit(200) for _ in range(50)]
        results2 = [channel2.transmit(200) for _ in range(50)]

        assert results1 == results2

    def test_statistics_tracking(self):
        """Test that statistics are properly tracked."""
        channel = BitErrorChannel(0.01, seed=7)

        for _ in range(500):
            channel.transmit(100)

        stats = channel.get_statistics()

        assert stats['frames'] == 500
        assert stats['clean_frames'] + stats['corrupted_frames'] + stats['lost_frames'] == 500
        assert 0.005 < stats['observed_ber'] < 0.02

    def test_reset(self):
        """Test channel reset with a new seed."""
        channel = BitErrorChannel(0.05, seed=1)
        first = [channel.transmit(100) for _ in range(10)]

        channel.reset(seed=1)

        assert channel.get_statistics()['frames'] == 0
        assert [channel.transmit(100) for _ in range(10)] == first


class TestVectorizedChannel:
    """Tests for binomial error-count sampling."""

    def test_total_loss(self):
        """Test that BER = 1 loses every frame."""
        channel = BitErrorChannel(1.0, seed=3, vectorized=True)

        assert channel.transmit(12432).is_lost

    def test_clean_fraction(self):
        """Test that the clean-frame fraction matches (1 - BER)^n."""
        channel = BitErrorChannel(1e-3, seed=11, vectorized=True)

        results = [channel.transmit(100) for _ in range(10000)]
        clean = sum(r.is_clean for r in results) / len(results)

        # (1 - 1e-3)^100 ~= 0.905
        assert 0.88 < clean < 0.93

    def test_injected_source_uses_per_bit_sampling(self):
        """Test that a non-numpy draw source falls back to per-bit draws."""
        draws = ScriptedDraws([], fill=0.9)
        channel = BitErrorChannel(0.5, rng=draws, vectorized=True)

        channel.transmit(12)

        assert draws.calls == 12


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
