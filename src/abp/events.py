"""
ABP Simulation Events

Defines the acknowledgment events produced by each send attempt, the
FIFO queue holding ACKs that are still in flight, and the optional
trace records emitted by the simulator.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from .errors import EventOrderError


@dataclass(frozen=True)
class AckEvent:
    """
    An acknowledgment on its way back to the sender.

    Attributes:
        rn: Receiver's next expected frame when the ACK was generated
        error: ACK arrived with 1..4 flipped bits
        time: Arrival time at the sender (ms)
    """
    rn: int
    error: bool
    time: float


class PendingAckQueue:
    """
    FIFO of in-flight acknowledgments.

    Every attempt of a run adds the same constant delay to a
    non-decreasing send time, so arrivals are already in time order and
    tail insertion keeps the queue sorted. Variable-size frames would
    break that and need a priority queue instead; an out-of-order push
    is therefore rejected rather than silently reordered.
    """

    def __init__(self):
        self._events: deque = deque()

    def push(self, event: AckEvent):
        """
        Append an event at the tail.

        Raises:
            EventOrderError: if the event arrives before the current tail
        """
        if self._events and event.time < self._events[-1].time:
            raise EventOrderError(
                f"ACK arriving at {event.time} enqueued behind one arriving "
                f"at {self._events[-1].time}"
            )
        self._events.append(event)

    def peek(self) -> Optional[AckEvent]:
        return self._events[0] if self._events else None

    def pop(self) -> AckEvent:
        return self._events.popleft()

    def clear(self):
        self._events.clear()

    def is_ordered(self) -> bool:
        """Check that arrival times are non-decreasing head to tail."""
        return all(a.time <= b.time for a, b in zip(self._events, list(self._events)[1:]))

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def __iter__(self) -> Iterator[AckEvent]:
        return iter(self._events)


class TraceKind(Enum):
    """Kinds of traced simulation events."""
    SEND = "send"
    FRAME_LOST = "frame_lost"
    ACK_LOST = "ack_lost"
    ACK_ACCEPTED = "ack_accepted"
    ACK_IGNORED = "ack_ignored"
    NAK = "nak"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class TraceEvent:
    """
    One entry of the simulation trace.

    Attributes:
        time: Sender clock when the event was recorded (ms)
        kind: What happened
        sn: Sender sequence number at that moment
        next_expected_ack: Sender's expected RN at that moment
        rn: RN carried by the ACK involved, if any
        detail: Free-form extra information
    """
    time: float
    kind: TraceKind
    sn: int
    next_expected_ack: int
    rn: Optional[int] = None
    detail: str = ""
