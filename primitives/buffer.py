"""Sample buffer and the playback-rate resampler.

A SampleBuffer is a (channels, frames) float32 block plus its sample rate.
Buffers are read-only once built; every stage returns a new one.

Resampling is plain linear interpolation at read position ``i * step``, so
pitch moves with speed (like a tape or a browser buffer source with
playbackRate set). It is the only stage that changes the frame count.
"""

import math
from dataclasses import dataclass

import numpy as np

from shared.errors import InvalidRate, ResourceExhausted


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    sample_rate: int
    data: np.ndarray

    def __post_init__(self):
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2 or data.shape[0] < 1:
            raise ValueError(f"expected (channels, frames) audio, got shape {data.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample rate must be positive, got {self.sample_rate}")
        if isinstance(self.data, np.ndarray) and np.shares_memory(data, self.data):
            data = data.copy()
        data.flags.writeable = False
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @classmethod
    def from_frames(cls, frames, sample_rate):
        """Build from a mono (frames,) or interleaved (frames, channels) array."""
        frames = np.asarray(frames)
        if frames.ndim == 2:
            frames = frames.T
        return cls(sample_rate, frames)

    @classmethod
    def silence(cls, sample_rate, frame_count, channels=1):
        return cls(sample_rate, np.zeros((channels, frame_count), dtype=np.float32))

    @property
    def channels(self) -> int:
        return self.data.shape[0]

    @property
    def frame_count(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def with_data(self, data):
        """New buffer with the same sample rate and different samples."""
        return SampleBuffer(self.sample_rate, data)

    def to_frames(self) -> np.ndarray:
        """(frames, channels) view, the layout scipy.io.wavfile uses."""
        return self.data.T


def check_rate(rate):
    """Return rate as a float, or raise InvalidRate."""
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        raise InvalidRate(rate) from None
    if not math.isfinite(rate) or rate <= 0.0:
        raise InvalidRate(rate)
    return rate


def resampled_length(frame_count, rate, source_rate=None, target_rate=None):
    """Frame count after resampling: ceil(frames / rate), rescaled for a new rate.

    A rate close enough to zero overflows to math.inf.
    """
    frames = frame_count / rate
    if target_rate is not None and source_rate is not None and target_rate != source_rate:
        frames = frames * target_rate / source_rate
    if not math.isfinite(frames):
        return math.inf
    return math.ceil(frames)


def resample(buffer: SampleBuffer, rate: float, sample_rate=None,
             max_samples=None) -> SampleBuffer:
    """Re-time buffer by playback rate.

    Args:
        buffer: source audio
        rate: playback rate, > 0 (2.0 = twice as fast, an octave up)
        sample_rate: output sample rate, None keeps the source rate
        max_samples: ceiling on frames * channels of the output

    Returns:
        new SampleBuffer of ceil(frames / rate) frames (scaled when the
        sample rate changes). Reads past the end of the source are silent.
    """
    rate = check_rate(rate)
    out_sr = buffer.sample_rate if sample_rate is None else int(sample_rate)
    if out_sr <= 0:
        raise ValueError(f"sample rate must be positive, got {sample_rate}")

    n_in = buffer.frame_count
    n_out = resampled_length(n_in, rate, buffer.sample_rate, out_sr)
    requested = n_out * buffer.channels
    if (max_samples is not None and requested > max_samples) or requested == math.inf:
        raise ResourceExhausted(requested, max_samples)

    step = rate * buffer.sample_rate / out_sr
    if step == 1.0:
        return SampleBuffer(out_sr, buffer.data[:, :n_out])

    pos = np.arange(n_out, dtype=np.float64) * step
    idx = np.floor(pos).astype(np.int64)
    frac = pos - idx
    # One trailing zero so idx + 1 == n_in interpolates toward silence
    padded = np.zeros((buffer.channels, n_in + 1), dtype=np.float64)
    padded[:, :n_in] = buffer.data
    i0 = np.minimum(idx, n_in)
    i1 = np.minimum(idx + 1, n_in)
    out = padded[:, i0] * (1.0 - frac) + padded[:, i1] * frac
    out[:, idx >= n_in] = 0.0
    return SampleBuffer(out_sr, out)
