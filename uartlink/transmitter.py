"""
Bit transmitter - Serializes bytes onto an idle-high serial line.
"""

import logging
from enum import Enum

from . import TICK_RATE, BIT_RATE, BITS_PER_BYTE, LINE_IDLE, LINE_START, LINE_STOP
from .packet import bit_period

_logger = logging.getLogger(__name__)


class TransmitterState(Enum):
    IDLE = "idle"
    START_BIT = "start_bit"
    DATA_BITS = "data_bits"
    STOP_BIT = "stop_bit"


class BitTransmitter:
    """
    8N1 line transmitter.

    Each byte is sent as one start bit (low), 8 data bits LSB first and one
    stop bit (high). Every bit is held for exactly ``ticks_per_bit`` calls
    to :meth:`step`, so a byte occupies the line for 10 bit periods.
    """

    def __init__(self, tick_rate: int = TICK_RATE, bit_rate: int = BIT_RATE):
        """
        Initialize transmitter.

        Args:
            tick_rate: Reference ticks per second (one tick per step)
            bit_rate: Line bits per second
        """
        self.tick_rate = tick_rate
        self.bit_rate = bit_rate
        self.ticks_per_bit = bit_period(tick_rate, bit_rate)

        self.reset()

    def reset(self):
        """Force the idle state: line high, not busy."""
        self._state = TransmitterState.IDLE
        self._shift = 0
        self._bit_index = 0
        self._counter = 0
        self._busy = False
        self._line = LINE_IDLE

    @property
    def state(self) -> TransmitterState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def line(self) -> int:
        return self._line

    def step(self, start: bool = False, data: int = 0) -> int:
        """
        Advance the transmitter by one tick.

        A start trigger in the idle state latches ``data`` and drives the
        start bit on the same tick. A start trigger while busy is ignored.

        Args:
            start: One-tick start trigger
            data: Byte to send when the trigger is accepted

        Returns:
            Line level (0 or 1) for this tick
        """
        state = self._state
        shift = self._shift
        bit_index = self._bit_index
        counter = self._counter
        busy = self._busy
        line = self._line

        if state is TransmitterState.IDLE:
            line = LINE_IDLE
            if start:
                if not 0 <= data <= 0xFF:
                    raise ValueError(f"data must be a byte, got {data}")
                shift = data
                bit_index = 0
                counter = 0
                busy = True
                state = TransmitterState.START_BIT
                line = LINE_START
        else:
            if start:
                _logger.debug(f"Start trigger ignored while busy (data=0x{data:02X})")

            if counter < self.ticks_per_bit - 1:
                counter += 1
            else:
                counter = 0
                if state is TransmitterState.START_BIT:
                    state = TransmitterState.DATA_BITS
                    bit_index = 0
                    line = shift & 1
                elif state is TransmitterState.DATA_BITS:
                    if bit_index < 7:
                        bit_index += 1
                        line = (shift >> bit_index) & 1
                    else:
                        state = TransmitterState.STOP_BIT
                        line = LINE_STOP
                else:
                    state = TransmitterState.IDLE
                    busy = False
                    line = LINE_IDLE

        self._state = state
        self._shift = shift
        self._bit_index = bit_index
        self._counter = counter
        self._busy = busy
        self._line = line

        return line


def serialize(data: int, tick_rate: int = TICK_RATE, bit_rate: int = BIT_RATE) -> list[int]:
    """
    Line levels for a single byte, one entry per tick.

    Args:
        data: Byte to serialize
        tick_rate: Reference ticks per second
        bit_rate: Line bits per second

    Returns:
        10 * ticks_per_bit levels
    """
    transmitter = BitTransmitter(tick_rate, bit_rate)
    levels = [transmitter.step(start=True, data=data)]
    for _ in range(BITS_PER_BYTE * transmitter.ticks_per_bit - 1):
        levels.append(transmitter.step())
    return levels
