"""
ABP Simulator - Discrete-Event Stop-and-Wait Simulation

This module implements the Alternating Bit Protocol simulation engine.
Each round sends one frame, then races the retransmission timer against
the acknowledgments still in flight to decide between accepting the ACK,
retransmitting early (NAK-aware mode) or retransmitting on timeout.
"""

from typing import Optional, List, Dict
from dataclasses import dataclass, field
from enum import Enum
import math
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    HEADER_LENGTH, PACKET_LENGTH, TIMEOUT, CHANNEL_CAPACITY,
    PROPAGATION_DELAY, BIT_ERROR_RATE, MAX_IDLE_ROUNDS, MAX_SIMULATION_TIME
)
from src.channel.bit_error import BitErrorChannel
from src.abp import timing
from src.abp.errors import ConfigurationError, NoProgressError
from src.abp.events import AckEvent, PendingAckQueue, TraceEvent, TraceKind
from src.abp.state import SenderState, ReceiverState
from src.utils.metrics import MetricsCollector, calculate_throughput
from src.utils.logger import SimulationLogger, LogLevel


class RoundOutcome(Enum):
    """How a sender round ended."""
    ACCEPTED = 0    # matching, error-free ACK before the deadline
    NAK = 1         # mismatched/corrupted ACK, NAK-aware mode
    TIMEOUT = 2     # deadline reached without a usable ACK


@dataclass(frozen=True)
class SimulationParameters:
    """
    Immutable configuration of one ABP run.

    Attributes:
        ack_nak: Retransmit immediately on a mismatched/corrupted ACK
        header_length: Frame header length H (bits)
        packet_length: Packet length l (bits)
        timeout: Retransmission timeout DELTA (ms)
        channel_capacity: Channel bitrate C (bps)
        propagation_delay: One-way propagation delay TAU (ms)
        bit_error_rate: Per-bit error probability
    """
    ack_nak: bool = False
    header_length: int = HEADER_LENGTH
    packet_length: int = PACKET_LENGTH
    timeout: float = TIMEOUT
    channel_capacity: float = CHANNEL_CAPACITY
    propagation_delay: float = PROPAGATION_DELAY
    bit_error_rate: float = BIT_ERROR_RATE

    def __post_init__(self):
        for name in ('header_length', 'packet_length'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be a whole number of bits, got {value!r}")
        if self.header_length < 1:
            raise ConfigurationError(f"header length must be >= 1 bit, got {self.header_length}")
        if self.packet_length < 1:
            raise ConfigurationError(f"packet length must be >= 1 bit, got {self.packet_length}")
        if not self.channel_capacity > 0 or math.isinf(self.channel_capacity):
            raise ConfigurationError(f"channel capacity must be positive, got {self.channel_capacity}")
        if not self.timeout > 0 or math.isinf(self.timeout):
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if not self.propagation_delay >= 0 or math.isinf(self.propagation_delay):
            raise ConfigurationError(
                f"propagation delay must be non-negative, got {self.propagation_delay}"
            )
        if not 0.0 <= self.bit_error_rate <= 1.0:
            raise ConfigurationError(f"bit error rate must be in [0, 1], got {self.bit_error_rate}")

    @property
    def data_frame_length(self) -> int:
        return self.header_length + self.packet_length

    @property
    def ack_frame_length(self) -> int:
        return self.header_length

    @property
    def data_transmission_delay(self) -> float:
        return timing.transmission_delay(self.data_frame_length, self.channel_capacity)

    def as_dict(self) -> Dict:
        return {
            'ack_nak': self.ack_nak,
            'header_length': self.header_length,
            'packet_length': self.packet_length,
            'timeout': self.timeout,
            'channel_capacity': self.channel_capacity,
            'propagation_delay': self.propagation_delay,
            'bit_error_rate': self.bit_error_rate,
        }


@dataclass
class SimulationResult:
    """Outcome of a run, as consumed by the reporting layer."""
    throughput: float
    elapsed_ms: float
    success_count: int
    target: int
    rounds: int
    complete: bool
    metrics: Dict = field(default_factory=dict)
    channel: Dict = field(default_factory=dict)
    trace: List[TraceEvent] = field(default_factory=list)


class ABPSimulator:
    """
    Alternating Bit Protocol simulator.

    A single half-duplex link carries data frames forward and ACK frames
    back. The sender holds one outstanding frame; ACKs that arrive after
    their round's deadline stay queued and may still be consumed by a
    later round.
    """

    def __init__(
        self,
        params: SimulationParameters,
        seed: Optional[int] = None,
        channel: Optional[BitErrorChannel] = None,
        vectorized_channel: bool = False,
        max_idle_rounds: Optional[int] = MAX_IDLE_ROUNDS,
        max_time: Optional[float] = MAX_SIMULATION_TIME,
        record_trace: bool = False,
        log_level: int = LogLevel.WARNING
    ):
        """
        Initialize simulator.

        Args:
            params: Link and protocol parameters
            seed: Seed for the channel's random source
            channel: Pre-built channel (overrides seed and vectorized_channel)
            vectorized_channel: Sample each frame's error count in one draw
            max_idle_rounds: Rounds without an accepted ACK before giving up
            max_time: Simulated time ceiling in ms
            record_trace: Keep a list of TraceEvent records
            log_level: Minimum log level
        """
        if max_idle_rounds is not None and max_idle_rounds < 1:
            raise ConfigurationError(f"max_idle_rounds must be positive, got {max_idle_rounds}")

        self.params = params
        self.seed = seed
        self.max_idle_rounds = max_idle_rounds
        self.max_time = max_time
        self.record_trace = record_trace

        self.logger = SimulationLogger(name="ABP", level=log_level)
        self._debug = self.logger.is_enabled(LogLevel.DEBUG)

        self.channel = channel if channel is not None else BitErrorChannel(
            params.bit_error_rate,
            seed=seed,
            vectorized=vectorized_channel
        )

        self.sender = SenderState()
        self.receiver = ReceiverState()
        self.ack_queue = PendingAckQueue()
        self.metrics = MetricsCollector(
            capacity=params.channel_capacity,
            header_length=params.header_length,
            packet_length=params.packet_length
        )
        self.trace: List[TraceEvent] = []

        self.success_count = 0
        self.rounds = 0

    def _trace(self, kind: TraceKind, rn: Optional[int] = None, detail: str = ""):
        if self.record_trace:
            self.trace.append(TraceEvent(
                time=self.sender.current_time,
                kind=kind,
                sn=self.sender.sn,
                next_expected_ack=self.sender.next_expected_ack,
                rn=rn,
                detail=detail
            ))

    def send(self, current_time: float, sn: int, data_frame_length: int) -> Optional[AckEvent]:
        """
        Push one data frame through the channel and build its ACK.

        Args:
            current_time: Time the frame starts transmission (ms)
            sn: Sequence number of the frame
            data_frame_length: Frame size in bits (header + packet)

        Returns:
            The ACK event, or None if the frame or its ACK was lost
        """
        data = self.channel.transmit(data_frame_length)
        if data.is_lost:
            self.metrics.record_frame_lost()
            self._trace(TraceKind.FRAME_LOST)
            if self._debug:
                self.logger.frame_lost(sn)
            return None

        if data.is_corrupted:
            self.metrics.record_frame_corrupted()
        elif not self.receiver.receive(sn, clean=True):
            self.metrics.record_duplicate()

        self.metrics.record_ack_sent()
        ack = self.channel.transmit(self.params.ack_frame_length)
        if ack.is_lost:
            self.metrics.record_ack_lost()
            self._trace(TraceKind.ACK_LOST)
            if self._debug:
                self.logger.ack_lost(sn)
            return None

        if ack.is_corrupted:
            self.metrics.record_ack_corrupted()

        return AckEvent(
            rn=self.receiver.next_expected_frame,
            error=ack.is_corrupted,
            time=timing.ack_arrival_time(
                current_time,
                data_frame_length,
                self.params.ack_frame_length,
                self.params.channel_capacity,
                self.params.propagation_delay
            )
        )

    def _expire(self, deadline: float) -> RoundOutcome:
        """Timer fired before any usable ACK."""
        self.sender.advance_to(deadline)
        self.metrics.record_timeout()
        self._trace(TraceKind.TIMEOUT)
        if self._debug:
            self.logger.set_sim_time(deadline)
            self.logger.timeout(self.sender.sn)
        return RoundOutcome.TIMEOUT

    def _race(self, deadline: float) -> RoundOutcome:
        """
        Resolve queued ACKs that arrive before ``deadline``.

        Returns:
            How the round ended
        """
        head = self.ack_queue.peek()
        if head is None or head.time >= deadline:
            return self._expire(deadline)

        while self.ack_queue:
            head = self.ack_queue.peek()
            if head.time >= deadline:
                return self._expire(deadline)

            self.ack_queue.pop()
            self.sender.advance_to(head.time)
            if self._debug:
                self.logger.set_sim_time(head.time)

            if self.sender.matches(head.rn) and not head.error:
                self.sender.accept_ack()
                self.metrics.record_ack_accepted()
                self._trace(TraceKind.ACK_ACCEPTED, rn=head.rn)
                if self._debug:
                    self.logger.ack_accepted(head.rn)
                return RoundOutcome.ACCEPTED

            if self.params.ack_nak:
                self.metrics.record_nak()
                self._trace(TraceKind.NAK, rn=head.rn, detail="corrupted" if head.error else "mismatch")
                if self._debug:
                    self.logger.nak(head.rn, head.error)
                return RoundOutcome.NAK

            self.metrics.record_ack_ignored()
            self._trace(TraceKind.ACK_IGNORED, rn=head.rn, detail="corrupted" if head.error else "stale")
            if self._debug:
                self.logger.ack_ignored(head.rn, head.error)

        return self._expire(deadline)

    def _build_result(self, target: int, complete: bool) -> SimulationResult:
        self.metrics.finish(self.sender.current_time)
        elapsed = self.metrics.elapsed
        return SimulationResult(
            throughput=calculate_throughput(self.success_count, elapsed, self.params.packet_length),
            elapsed_ms=elapsed,
            success_count=self.success_count,
            target=target,
            rounds=self.rounds,
            complete=complete,
            metrics=self.metrics.get_summary(),
            channel=self.channel.get_statistics(),
            trace=list(self.trace)
        )

    def _check_progress(self, idle_rounds: int, target: int):
        """Raise NoProgressError once a ceiling is crossed."""
        reason = None
        if self.max_idle_rounds is not None and idle_rounds >= self.max_idle_rounds:
            reason = f"{idle_rounds} consecutive rounds without an accepted ACK"
        elif self.max_time is not None and self.sender.current_time >= self.max_time:
            reason = f"simulated time limit of {self.max_time} ms reached"

        if reason:
            result = self._build_result(target, complete=False)
            self.logger.error(
                f"No progress: {reason} ({self.success_count}/{target} packets delivered)",
                "SIM"
            )
            raise NoProgressError(reason, result=result)

    def run(self, success_packets: int) -> SimulationResult:
        """
        Run until ``success_packets`` packets have been acknowledged.

        Args:
            success_packets: Number of successfully delivered packets

        Returns:
            SimulationResult with throughput, elapsed time and counters

        Raises:
            ConfigurationError: if ``success_packets`` is negative
            NoProgressError: if a run ceiling is hit first
        """
        if success_packets < 0:
            raise ConfigurationError(f"target packet count must be >= 0, got {success_packets}")

        self.reset()
        self.metrics.start(0.0)
        self.logger.simulation_start({**self.params.as_dict(), 'success_packets': success_packets})

        data_frame_length = self.params.data_frame_length
        idle_rounds = 0
        retransmission = False

        while self.success_count < success_packets:
            self.rounds += 1
            idle_rounds += 1

            send_time = self.sender.current_time
            deadline = timing.timeout_deadline(
                send_time,
                data_frame_length,
                self.params.channel_capacity,
                self.params.timeout
            )

            self.metrics.record_transmission(retransmission)
            self._trace(TraceKind.SEND, detail="retransmission" if retransmission else "")
            if self._debug:
                self.logger.set_sim_time(send_time)
                self.logger.frame_sent(self.sender.sn, retransmission)

            event = self.send(send_time, self.sender.sn, data_frame_length)
            if event is not None:
                self.ack_queue.push(event)

            outcome = self._race(deadline)

            if outcome == RoundOutcome.ACCEPTED:
                self.success_count += 1
                idle_rounds = 0
                retransmission = False
            else:
                retransmission = True

            if self.success_count < success_packets:
                self._check_progress(idle_rounds, success_packets)

        result = self._build_result(success_packets, complete=True)
        self.logger.simulation_end(result.metrics)
        return result

    def simulate(self, success_packets: int) -> float:
        """Run the simulation and return the throughput in bps."""
        return self.run(success_packets).throughput

    def reset(self, seed: Optional[int] = None):
        """Reset protocol state, counters and, optionally, the channel seed."""
        if seed is not None:
            self.seed = seed
            self.channel.reset(seed)
        else:
            self.channel.reset_statistics()
        self.sender.reset()
        self.receiver.reset()
        self.ack_queue.clear()
        self.metrics.reset()
        self.trace = []
        self.success_count = 0
        self.rounds = 0


if __name__ == "__main__":
    print("=" * 60)
    print("ABP SIMULATOR TEST")
    print("=" * 60)

    params = SimulationParameters(
        ack_nak=False,
        header_length=8,
        packet_length=80,
        timeout=1000.0,
        channel_capacity=1000,
        propagation_delay=5.0,
        bit_error_rate=0.0
    )

    sim = ABPSimulator(params, seed=42, log_level=LogLevel.INFO)
    result = sim.run(1)

    print(f"\nTime to complete (ms): {result.elapsed_ms:f}")
    print(f"Throughput (bps): {result.throughput:f}")
