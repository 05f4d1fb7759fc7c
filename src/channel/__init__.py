"""
Channel package - Physical channel models.

Contains implementations for:
- Independent bit error channel with a frame-loss threshold
"""

from .bit_error import BitErrorChannel, FrameOutcome, TransmissionResult

__all__ = [
    'BitErrorChannel',
    'FrameOutcome',
    'TransmissionResult'
]
