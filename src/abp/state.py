"""
ABP Protocol State

Sequence-number state of the sender and the receiver. Both sides only
ever hold one bit of sequence information; the sender's state moves on
an accepted ACK, the receiver's on an error-free in-sequence frame.
"""

from dataclasses import dataclass

from .errors import EventOrderError


@dataclass
class SenderState:
    """
    Sender-side protocol variables.

    Attributes:
        sn: Sequence number of the frame being sent
        next_expected_ack: RN value that acknowledges the current frame
        current_time: Sender's simulated clock (ms)
    """
    sn: int = 0
    next_expected_ack: int = 1
    current_time: float = 0.0

    def accept_ack(self):
        """Move on to the next packet. sn and next_expected_ack flip together."""
        self.sn ^= 1
        self.next_expected_ack ^= 1

    def matches(self, rn: int) -> bool:
        return rn == self.next_expected_ack

    def advance_to(self, time: float):
        """
        Move the clock forward.

        Raises:
            EventOrderError: if ``time`` lies in the past
        """
        if time < self.current_time:
            raise EventOrderError(
                f"sender clock cannot go back from {self.current_time} to {time}"
            )
        self.current_time = time

    def reset(self):
        self.sn = 0
        self.next_expected_ack = 1
        self.current_time = 0.0


@dataclass
class ReceiverState:
    """
    Receiver-side protocol variable.

    Attributes:
        next_expected_frame: Sequence number the receiver waits for
        frames_accepted: Frames delivered to the upper layer
        duplicates: Clean frames rejected because of their sequence number
    """
    next_expected_frame: int = 0
    frames_accepted: int = 0
    duplicates: int = 0

    def receive(self, sn: int, clean: bool) -> bool:
        """
        Process an arriving data frame.

        Args:
            sn: Sequence number carried by the frame
            clean: Whether the frame arrived without bit errors

        Returns:
            True if the frame was accepted (and the expectation flipped)
        """
        if not clean:
            return False
        if sn != self.next_expected_frame:
            self.duplicates += 1
            return False

        self.next_expected_frame ^= 1
        self.frames_accepted += 1
        return True

    def reset(self):
        self.next_expected_frame = 0
        self.frames_accepted = 0
        self.duplicates = 0
