"""
Line capture - Store serial line levels as audio and read them back.

A captured line is an audio file sampled at the tick rate: one sample per
tick, +amplitude for a high level and -amplitude for a low level.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf

from . import TICK_RATE, BIT_RATE, MAX_PAYLOAD
from .link import decode_line
from .packet import FrameResult

_logger = logging.getLogger(__name__)


def levels_to_samples(levels: np.ndarray, amplitude: float = 0.7) -> np.ndarray:
    """Map 0/1 line levels to -amplitude/+amplitude samples."""
    if not 0.0 < amplitude <= 1.0:
        raise ValueError("amplitude must be in (0.0, 1.0]")
    levels = np.asarray(levels, dtype=np.float32)
    return (levels * 2.0 - 1.0) * amplitude


def samples_to_levels(samples: np.ndarray, threshold: float = 0.0) -> np.ndarray:
    """Slice audio samples into 0/1 line levels."""
    samples = np.asarray(samples, dtype=np.float32)
    return (samples > threshold).astype(np.uint8)


def write_line(
    output_path: str | Path,
    levels: np.ndarray,
    tick_rate: int = TICK_RATE,
    amplitude: float = 0.7,
):
    """
    Save line levels to an audio file.

    Args:
        output_path: Output WAV file path
        levels: 0/1 line levels, one per tick
        tick_rate: Ticks per second, used as the sample rate
        amplitude: Output amplitude (0.0 to 1.0)
    """
    samples = levels_to_samples(levels, amplitude)

    sf.write(
        str(output_path),
        samples,
        tick_rate,
        subtype='PCM_16'
    )
    _logger.debug(f"Wrote {len(samples)} samples at {tick_rate} Hz to {output_path}")


def read_line(
    file_path: str | Path,
    tick_rate: int = TICK_RATE,
    threshold: float = 0.0,
) -> np.ndarray:
    """
    Load line levels from an audio file.

    Args:
        file_path: Path to audio file
        tick_rate: Expected ticks per second; other rates are resampled
        threshold: Level slicing threshold

    Returns:
        0/1 line levels, one per tick
    """
    samples, sr = sf.read(str(file_path))

    # First channel only
    if samples.ndim > 1:
        samples = samples[:, 0]

    if sr != tick_rate:
        from scipy import signal
        num_samples = int(len(samples) * tick_rate / sr)
        _logger.info(f"Resampling {file_path} from {sr} Hz to {tick_rate} Hz")
        samples = signal.resample(samples, num_samples)

    return samples_to_levels(samples, threshold)


def decode_file(
    file_path: str | Path,
    tick_rate: int = TICK_RATE,
    bit_rate: int = BIT_RATE,
    max_payload: int = MAX_PAYLOAD,
    timeout_ticks: Optional[int] = None,
    check_stop_bit: bool = False,
) -> list[FrameResult]:
    """
    Decode frames from a captured line.

    Args:
        file_path: Path to audio file
        tick_rate: Ticks per second of the line
        bit_rate: Line bits per second
        max_payload: Largest accepted payload
        timeout_ticks: Receiver timeout (None = never)
        check_stop_bit: Drop bytes with a low stop bit

    Returns:
        Frame results, in order
    """
    levels = read_line(file_path, tick_rate)
    return decode_line(
        levels,
        tick_rate,
        bit_rate,
        max_payload=max_payload,
        timeout_ticks=timeout_ticks,
        check_stop_bit=check_stop_bit,
    )
