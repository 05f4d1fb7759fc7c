"""
ABP package - Alternating Bit Protocol components.

Contains implementations for:
- Frame timing arithmetic
- Sender and receiver sequence-number state
- ACK events, the pending-ACK queue and trace records
- Simulator exceptions
"""

from .errors import SimulationError, ConfigurationError, EventOrderError, NoProgressError
from .events import AckEvent, PendingAckQueue, TraceEvent, TraceKind
from .state import SenderState, ReceiverState
from . import timing

__all__ = [
    'AckEvent',
    'PendingAckQueue',
    'TraceEvent',
    'TraceKind',
    'SenderState',
    'ReceiverState',
    'SimulationError',
    'ConfigurationError',
    'EventOrderError',
    'NoProgressError',
    'timing'
]
