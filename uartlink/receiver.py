"""
Bit receiver - Deserializes bytes from an idle-high serial line.
"""

import logging
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from . import TICK_RATE, BIT_RATE, LINE_IDLE, LINE_START, LINE_STOP
from .packet import bit_period

_logger = logging.getLogger(__name__)


class ReceiverState(Enum):
    IDLE = "idle"
    START_BIT = "start_bit"
    DATA_BITS = "data_bits"
    STOP_BIT = "stop_bit"


class ReceiverOutput(NamedTuple):
    """Receiver outputs for one tick. ``done`` is high for a single tick."""

    done: bool
    data: int


class BitReceiver:
    """
    8N1 line receiver with mid-bit sampling.

    A falling edge while idle starts a receive. The line is re-sampled half
    a bit period later to confirm the start bit (a high level there is a
    false start, e.g. a glitch, and is dropped). Data bits are then sampled
    one full period apart, LSB first, and after one more period for the stop
    bit the byte is presented with ``done`` high for exactly one tick.
    """

    def __init__(
        self,
        tick_rate: int = TICK_RATE,
        bit_rate: int = BIT_RATE,
        timeout_ticks: Optional[int] = None,
        check_stop_bit: bool = False,
    ):
        """
        Initialize receiver.

        Args:
            tick_rate: Reference ticks per second (one tick per step)
            bit_rate: Line bits per second
            timeout_ticks: Abort a receive still in progress after this many
                ticks (None = never). A full byte needs
                ticks_per_bit // 2 + 9 * ticks_per_bit ticks.
            check_stop_bit: Drop bytes whose stop bit samples low
        """
        if timeout_ticks is not None and timeout_ticks < 1:
            raise ValueError("timeout_ticks must be positive")

        self.tick_rate = tick_rate
        self.bit_rate = bit_rate
        self.ticks_per_bit = bit_period(tick_rate, bit_rate)
        self.half_bit = self.ticks_per_bit // 2
        self.timeout_ticks = timeout_ticks
        self.check_stop_bit = check_stop_bit

        # Statistics
        self.bytes_received = 0
        self.false_starts = 0
        self.stop_bit_errors = 0
        self.timeouts = 0

        self.reset()

    def reset(self):
        """Force the idle state and clear counters and the done pulse."""
        self._state = ReceiverState.IDLE
        self._counter = 0
        self._bit_index = 0
        self._shift = 0
        self._elapsed = 0
        self._prev_line = LINE_IDLE
        self._done = False
        self._data = 0

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def done(self) -> bool:
        return self._done

    @property
    def data(self) -> int:
        return self._data

    def _sample_target(self, state: ReceiverState) -> int:
        if state is ReceiverState.START_BIT:
            return self.half_bit
        return self.ticks_per_bit

    def step(self, line: int) -> ReceiverOutput:
        """
        Advance the receiver by one tick.

        Args:
            line: Line level (0 or 1) for this tick

        Returns:
            ReceiverOutput with done high on the tick a byte completes
        """
        line = int(line) & 1

        state = self._state
        counter = self._counter
        bit_index = self._bit_index
        shift = self._shift
        elapsed = self._elapsed
        done = False
        data = self._data

        if state is ReceiverState.IDLE:
            if self._prev_line == LINE_IDLE and line == LINE_START:
                counter = 0
                bit_index = 0
                shift = 0
                elapsed = 0
                # With one tick per bit the edge itself is the mid-bit sample
                if self.half_bit == 0:
                    state = ReceiverState.DATA_BITS
                else:
                    state = ReceiverState.START_BIT
        else:
            elapsed += 1
            if self.timeout_ticks is not None and elapsed > self.timeout_ticks:
                _logger.debug(f"Receive timed out in {state.value} after {elapsed} ticks")
                self.timeouts += 1
                state = ReceiverState.IDLE
            elif counter < self._sample_target(state) - 1:
                counter += 1
            else:
                counter = 0
                if state is ReceiverState.START_BIT:
                    if line == LINE_START:
                        state = ReceiverState.DATA_BITS
                    else:
                        _logger.debug("False start: line high at mid start bit")
                        self.false_starts += 1
                        state = ReceiverState.IDLE
                elif state is ReceiverState.DATA_BITS:
                    shift |= line << bit_index
                    if bit_index < 7:
                        bit_index += 1
                    else:
                        state = ReceiverState.STOP_BIT
                else:
                    state = ReceiverState.IDLE
                    if self.check_stop_bit and line != LINE_STOP:
                        _logger.debug(f"Stop bit low, dropping byte 0x{shift:02X}")
                        self.stop_bit_errors += 1
                    else:
                        done = True
                        data = shift
                        self.bytes_received += 1

        self._state = state
        self._counter = counter
        self._bit_index = bit_index
        self._shift = shift
        self._elapsed = elapsed
        self._done = done
        self._data = data
        self._prev_line = line

        return ReceiverOutput(done, data)

    def get_statistics(self) -> dict:
        """
        Get receiver statistics.

        Returns:
            Dict with: bytes_received, false_starts, stop_bit_errors, timeouts
        """
        return {
            "bytes_received": self.bytes_received,
            "false_starts": self.false_starts,
            "stop_bit_errors": self.stop_bit_errors,
            "timeouts": self.timeouts,
        }


def deserialize(
    levels: Iterable[int],
    tick_rate: int = TICK_RATE,
    bit_rate: int = BIT_RATE,
) -> bytes:
    """
    Run line levels through a fresh receiver.

    Args:
        levels: One line level per tick
        tick_rate: Reference ticks per second
        bit_rate: Line bits per second

    Returns:
        Bytes received, in order
    """
    receiver = BitReceiver(tick_rate, bit_rate)
    data = bytearray()
    for level in levels:
        output = receiver.step(level)
        if output.done:
            data.append(output.data)
    return bytes(data)
