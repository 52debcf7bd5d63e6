"""
uartlink - Serial line transceiver and packet framing.
An 8N1 asynchronous bit-level link with a delimited, checksummed packet layer.
"""

__version__ = "0.1.0"

# Line timing defaults
TICK_RATE = 48000  # reference ticks per second
BIT_RATE = 4800  # bits per second
BITS_PER_BYTE = 10  # start + 8 data + stop

# Line levels
LINE_IDLE = 1
LINE_START = 0
LINE_STOP = 1

# Packet structure
START_MARKER = 0xAA
END_MARKER = 0x55
MAX_PAYLOAD = 255  # length is a single byte
FRAME_OVERHEAD = 4  # start + length + checksum + end

from .packet import (
    FrameError,
    FrameResult,
    PayloadOverflowError,
    XorChecksum,
    bit_period,
    encode_frame,
)
from .transmitter import BitTransmitter, TransmitterState
from .receiver import BitReceiver, ReceiverOutput, ReceiverState
from .framer import PacketFramer, FramerStage
from .deframer import PacketDeframer, DeframerStage
from .link import SerialLink, encode_line, decode_line

__all__ = [
    "FrameError",
    "FrameResult",
    "PayloadOverflowError",
    "XorChecksum",
    "bit_period",
    "encode_frame",
    "BitTransmitter",
    "TransmitterState",
    "BitReceiver",
    "ReceiverOutput",
    "ReceiverState",
    "PacketFramer",
    "FramerStage",
    "PacketDeframer",
    "DeframerStage",
    "SerialLink",
    "encode_line",
    "decode_line",
]
