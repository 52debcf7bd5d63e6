"""
Serial link - Runs framer, transmitter, wire, receiver and deframer in lock-step.
"""

import logging
from typing import Callable, Iterable, Optional

import numpy as np

from . import TICK_RATE, BIT_RATE, BITS_PER_BYTE, MAX_PAYLOAD, FRAME_OVERHEAD
from .packet import FrameResult
from .transmitter import BitTransmitter
from .receiver import BitReceiver, ReceiverState
from .framer import PacketFramer
from .deframer import PacketDeframer

_logger = logging.getLogger(__name__)


class SerialLink:
    """
    One-way serial link simulated one tick at a time.

    Every tick follows a single clock domain:

    1. the transmitter consumes the start pulse the framer issued last tick
    2. the wire optionally corrupts the line level
    3. the receiver samples the wire
    4. the deframer consumes whatever byte the receiver completed
    5. the framer looks at the updated transmitter busy flag
    """

    def __init__(
        self,
        tick_rate: int = TICK_RATE,
        bit_rate: int = BIT_RATE,
        max_payload: int = MAX_PAYLOAD,
        noise: float = 0.0,
        seed: Optional[int] = None,
        timeout_ticks: Optional[int] = None,
        check_stop_bit: bool = False,
        callback: Optional[Callable[[FrameResult], None]] = None,
    ):
        """
        Initialize link.

        Args:
            tick_rate: Reference ticks per second
            bit_rate: Line bits per second
            max_payload: Payload capacity of framer and deframer
            noise: Probability of flipping the wire level on any tick
            seed: Seed for the noise generator
            timeout_ticks: Receiver timeout (None = never)
            check_stop_bit: Receiver drops bytes with a low stop bit
            callback: Optional callback for each frame result
        """
        if not 0.0 <= noise <= 1.0:
            raise ValueError("noise must be between 0.0 and 1.0")

        self.transmitter = BitTransmitter(tick_rate, bit_rate)
        self.receiver = BitReceiver(
            tick_rate,
            bit_rate,
            timeout_ticks=timeout_ticks,
            check_stop_bit=check_stop_bit,
        )
        self.framer = PacketFramer(max_payload)
        self.deframer = PacketDeframer(max_payload)
        self.ticks_per_bit = self.transmitter.ticks_per_bit

        self.noise = noise
        self._rng = np.random.default_rng(seed)
        self._flips: set[int] = set()

        self.callback = callback

        self._pending: Optional[int] = None
        self._line_trace: list[int] = []
        self._wire_trace: list[int] = []

        # Statistics
        self.ticks = 0
        self.bit_errors = 0

    @property
    def idle(self) -> bool:
        """True when nothing is queued, in flight, or being received."""
        return (
            self._pending is None
            and not self.framer.busy
            and not self.transmitter.busy
            and self.receiver.state is ReceiverState.IDLE
        )

    @property
    def line_trace(self) -> np.ndarray:
        """Transmitted line levels, one per tick."""
        return np.array(self._line_trace, dtype=np.uint8)

    @property
    def wire_trace(self) -> np.ndarray:
        """Line levels as seen by the receiver, after noise."""
        return np.array(self._wire_trace, dtype=np.uint8)

    def inject_flip(self, tick: int):
        """Invert the wire level at an absolute tick index."""
        self._flips.add(tick)

    def send(self, payload: bytes) -> bool:
        """
        Queue a payload for framing.

        Returns:
            True if accepted, False if a frame is still being handed over
        """
        return self.framer.send(payload)

    def tick(self) -> Optional[FrameResult]:
        """
        Advance the whole link by one tick.

        Returns:
            FrameResult if a frame finished on this tick, otherwise None
        """
        pending = self._pending
        line = self.transmitter.step(start=pending is not None, data=pending or 0)

        wire = line
        flip = self.ticks in self._flips
        if not flip and self.noise:
            flip = self._rng.random() < self.noise
        if flip:
            wire ^= 1
            self.bit_errors += 1
            self._flips.discard(self.ticks)

        output = self.receiver.step(wire)
        result = self.deframer.step(output.done, output.data)
        self._pending = self.framer.step(self.transmitter.busy)

        self._line_trace.append(line)
        self._wire_trace.append(wire)
        self.ticks += 1

        if result is not None:
            _logger.debug(f"Tick {self.ticks}: {result}")
            if self.callback:
                self.callback(result)

        return result

    def run(self, ticks: int) -> list[FrameResult]:
        """Advance a fixed number of ticks and return the frame results."""
        results = []
        for _ in range(ticks):
            result = self.tick()
            if result is not None:
                results.append(result)
        return results

    def run_until_idle(self, max_ticks: Optional[int] = None) -> list[FrameResult]:
        """
        Advance until the link is idle.

        Args:
            max_ticks: Upper bound on ticks (default: two maximum-size frames)

        Returns:
            Frame results produced while running
        """
        if max_ticks is None:
            max_ticks = 2 * (MAX_PAYLOAD + FRAME_OVERHEAD) * BITS_PER_BYTE * self.ticks_per_bit

        results = []
        for _ in range(max_ticks):
            if self.idle:
                break
            result = self.tick()
            if result is not None:
                results.append(result)
        else:
            if not self.idle:
                raise RuntimeError(f"Link still busy after {max_ticks} ticks")

        return results

    def transfer(self, payload: bytes) -> list[FrameResult]:
        """
        Send one payload end to end.

        Returns:
            Frame results produced, normally a single valid result

        Raises:
            RuntimeError: If the framer holds a partial payload from append()
        """
        results = self.run_until_idle()
        if not self.send(payload):
            raise RuntimeError(
                f"Framer holds {self.framer.length} appended bytes, payload not sent"
            )
        results.extend(self.run_until_idle())
        return results

    def get_statistics(self) -> dict:
        """
        Get link statistics.

        Returns:
            Dict with tick and wire counters plus receiver and deframer statistics
        """
        stats = {
            "ticks": self.ticks,
            "bit_errors": self.bit_errors,
            "frames_sent": self.framer.frames_sent,
        }
        stats.update(self.receiver.get_statistics())
        stats.update(self.deframer.get_statistics())
        return stats


def encode_line(
    payload: bytes,
    tick_rate: int = TICK_RATE,
    bit_rate: int = BIT_RATE,
    idle_bits: int = 2,
) -> np.ndarray:
    """
    Line levels for one framed payload.

    Args:
        payload: 1 to 255 payload bytes
        tick_rate: Reference ticks per second
        bit_rate: Line bits per second
        idle_bits: Idle (high) bit periods before and after the frame

    Returns:
        Array of 0/1 levels, one per tick
    """
    link = SerialLink(tick_rate, bit_rate)
    link.run(idle_bits * link.ticks_per_bit)
    link.transfer(payload)
    link.run(idle_bits * link.ticks_per_bit)
    return link.line_trace


def decode_line(
    levels: Iterable[int],
    tick_rate: int = TICK_RATE,
    bit_rate: int = BIT_RATE,
    max_payload: int = MAX_PAYLOAD,
    timeout_ticks: Optional[int] = None,
    check_stop_bit: bool = False,
) -> list[FrameResult]:
    """
    Receive and deframe a sequence of line levels.

    Args:
        levels: One line level per tick
        tick_rate: Reference ticks per second
        bit_rate: Line bits per second
        max_payload: Largest accepted payload
        timeout_ticks: Receiver timeout (None = never)
        check_stop_bit: Drop bytes with a low stop bit

    Returns:
        Frame results, in order
    """
    receiver = BitReceiver(
        tick_rate,
        bit_rate,
        timeout_ticks=timeout_ticks,
        check_stop_bit=check_stop_bit,
    )
    deframer = PacketDeframer(max_payload)

    results = []
    for level in levels:
        output = receiver.step(level)
        result = deframer.step(output.done, output.data)
        if result is not None:
            results.append(result)
    return results
