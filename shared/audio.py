"""Shared audio I/O utilities.

Provides load_wav (the decoder feeding the render engine) and make_impulse
used by the CLI renderer and tests.
"""

import logging
from math import gcd

import numpy as np
from scipy.io import wavfile
from scipy.signal import resample_poly

from primitives.buffer import SampleBuffer
from shared.errors import DecodeError

log = logging.getLogger(__name__)


def load_wav(path, sr=None) -> SampleBuffer:
    """Decode a WAV file into a SampleBuffer.

    int16, int32, uint8 and float files are scaled to [-1, 1]. When sr is
    given and differs from the file rate the audio is resampled to sr.

    Raises DecodeError for unreadable or empty files.
    """
    try:
        file_sr, data = wavfile.read(path)
    except (ValueError, EOFError) as e:
        raise DecodeError(f"cannot decode {path}: {e}") from e

    if data.dtype == np.int16:
        audio = data.astype(np.float64) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / 2147483648.0
    elif data.dtype == np.uint8:
        audio = (data.astype(np.float64) - 128.0) / 128.0
    elif data.dtype.kind == "f":
        audio = data.astype(np.float64)
    else:
        raise DecodeError(f"cannot decode {path}: unsupported sample type {data.dtype}")

    if audio.size == 0:
        raise DecodeError(f"cannot decode {path}: no audio frames")

    if sr is not None and file_sr != sr:
        g = gcd(sr, file_sr)
        log.debug("resampling %s from %d to %d Hz", path, file_sr, sr)
        audio = resample_poly(audio, sr // g, file_sr // g, axis=0)
        file_sr = sr

    # wavfile gives (frames,) or (frames, channels)
    return SampleBuffer.from_frames(audio, file_sr)


def make_impulse(sr=44100, seconds=0.5, channels=1) -> SampleBuffer:
    """Unit impulse (click) for testing."""
    n = int(sr * seconds)
    impulse = np.zeros((channels, n))
    impulse[:, 0] = 1.0
    return SampleBuffer(sr, impulse)
