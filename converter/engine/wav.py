"""16-bit PCM WAV encoder.

scipy.io.wavfile writes int16 data as a canonical 44-byte header
("RIFF" / "fmt " PCM / "data") followed by interleaved frames.

Samples are clamped to [-1, 1] and scaled asymmetrically, 32768 for negative
values and 32767 for the rest, so both ends of the int16 range are reachable.
"""

import io

import numpy as np
from scipy.io import wavfile

from primitives.buffer import SampleBuffer

HEADER_SIZE = 44


def to_int16(samples) -> np.ndarray:
    """Float samples to int16 with asymmetric scaling (round half up)."""
    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.floor(scaled + 0.5).astype(np.int16)


def _frames(buffer: SampleBuffer) -> np.ndarray:
    # (channels, frames) -> (frames, channels), the layout wavfile interleaves
    return np.ascontiguousarray(to_int16(buffer.data).T)


def encode_wav(buffer: SampleBuffer) -> bytes:
    """Serialize buffer as a WAV file, 44 + frames * channels * 2 bytes."""
    bio = io.BytesIO()
    wavfile.write(bio, buffer.sample_rate, _frames(buffer))
    return bio.getvalue()


def save_wav(path, buffer: SampleBuffer):
    """Write buffer to path as 16-bit PCM. Returns the byte count."""
    wavfile.write(path, buffer.sample_rate, _frames(buffer))
    return HEADER_SIZE + buffer.frame_count * buffer.channels * 2
