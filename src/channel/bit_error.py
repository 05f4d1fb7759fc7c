"""
Independent Bit Error Channel Model

This module implements the memoryless binary symmetric channel used by
the ABP simulator. Every bit of a frame is flipped independently with
probability BER; the number of flipped bits decides whether the frame
arrives clean, arrives flagged as corrupted, or is lost.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import sys
sys.path.insert(0, '..')
from config import LOSS_THRESHOLD_BITS


class FrameOutcome(Enum):
    """Result of pushing one frame through the channel."""
    CLEAN = 0
    CORRUPTED = 1
    LOST = 2


@dataclass(frozen=True)
class TransmissionResult:
    """
    Outcome of a single frame transmission.

    Attributes:
        outcome: CLEAN, CORRUPTED or LOST
        error_bits: Number of flipped bits observed (capped at the loss
            threshold for lost frames)
    """
    outcome: FrameOutcome
    error_bits: int = 0

    @property
    def is_lost(self) -> bool:
        return self.outcome == FrameOutcome.LOST

    @property
    def is_clean(self) -> bool:
        return self.outcome == FrameOutcome.CLEAN

    @property
    def is_corrupted(self) -> bool:
        return self.outcome == FrameOutcome.CORRUPTED


CLEAN = TransmissionResult(FrameOutcome.CLEAN, 0)


class BitErrorChannel:
    """
    Binary symmetric channel with a frame-loss threshold.

    Bits are sampled one at a time; as soon as the running error count
    reaches the loss threshold the frame is declared lost and no further
    bits are drawn. The random source is owned by the channel so runs are
    reproducible from a seed, and any object exposing ``random()`` can be
    injected in its place.

    Attributes:
        bit_error_rate: Per-bit error probability
        loss_threshold: Error-bit count at which a frame is lost
        vectorized: Draw the error count from one binomial sample per frame
        rng: Random source
    """

    def __init__(
        self,
        bit_error_rate: float,
        seed: Optional[int] = None,
        rng=None,
        loss_threshold: int = LOSS_THRESHOLD_BITS,
        vectorized: bool = False
    ):
        """
        Initialize the channel.

        Args:
            bit_error_rate: Probability in [0, 1] that a bit is flipped
            seed: Random seed for reproducibility
            rng: Injected draw source (overrides seed)
            loss_threshold: Error bits at which a frame counts as lost
            vectorized: Use binomial sampling instead of per-bit draws
        """
        if not 0.0 <= bit_error_rate <= 1.0:
            raise ValueError(f"bit error rate must be in [0, 1], got {bit_error_rate}")
        if loss_threshold < 1:
            raise ValueError(f"loss threshold must be positive, got {loss_threshold}")

        self.bit_error_rate = bit_error_rate
        self.loss_threshold = loss_threshold
        self.vectorized = vectorized
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # Statistics tracking
        self.frames_transmitted = 0
        self.bits_sampled = 0
        self.total_bit_errors = 0
        self.clean_frames = 0
        self.corrupted_frames = 0
        self.lost_frames = 0

    def transmit(self, frame_length_bits: int) -> TransmissionResult:
        """
        Simulate transmission of one frame.

        Args:
            frame_length_bits: Size of the frame in bits

        Returns:
            TransmissionResult describing the frame's fate
        """
        self.frames_transmitted += 1

        if self.bit_error_rate == 0.0 or frame_length_bits <= 0:
            self.clean_frames += 1
            return CLEAN

        if self.vectorized and isinstance(self.rng, np.random.Generator):
            error_bits = int(self.rng.binomial(frame_length_bits, self.bit_error_rate))
            self.bits_sampled += frame_length_bits
        else:
            error_bits = self._sample_bits(frame_length_bits)

        self.total_bit_errors += error_bits

        if error_bits >= self.loss_threshold:
            self.lost_frames += 1
            return TransmissionResult(FrameOutcome.LOST, self.loss_threshold)
        if error_bits > 0:
            self.corrupted_frames += 1
            return TransmissionResult(FrameOutcome.CORRUPTED, error_bits)

        self.clean_frames += 1
        return CLEAN

    def _sample_bits(self, frame_length_bits: int) -> int:
        """Draw bits one by one, stopping early at the loss threshold."""
        error_bits = 0
        for _ in range(frame_length_bits):
            self.bits_sampled += 1
            if self.rng.random() < self.bit_error_rate:
                error_bits += 1
                if error_bits == self.loss_threshold:
                    break
        return error_bits

    def get_statistics(self) -> dict:
        """
        Get channel statistics.

        Returns:
            Dictionary with transmission statistics
        """
        return {
            'frames': self.frames_transmitted,
            'bits_sampled': self.bits_sampled,
            'bit_errors': self.total_bit_errors,
            'observed_ber': (self.total_bit_errors / self.bits_sampled
                             if self.bits_sampled > 0 else 0),
            'clean_frames': self.clean_frames,
            'corrupted_frames': self.corrupted_frames,
            'lost_frames': self.lost_frames,
        }

    def reset_statistics(self):
        """Reset all statistics counters."""
        self.frames_transmitted = 0
        self.bits_sampled = 0
        self.total_bit_errors = 0
        self.clean_frames = 0
        self.corrupted_frames = 0
        self.lost_frames = 0

    def reset(self, seed: Optional[int] = None):
        """
        Reset the channel statistics and optionally reseed.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.reset_statistics()

