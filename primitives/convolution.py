"""Synthetic impulse responses and truncated convolution — the reverb stage.

The impulse is decaying noise, not a measured room:
    ir[ch][i] = uniform(-1, 1) * (1 - i / length) ** decay

Convolution keeps only the first len(input) samples of the full result, so the
reverb tail past the end of the source is dropped and every stage of a render
sees the same frame count.
"""

import logging

import numpy as np
from scipy.signal import convolve as _direct_convolve
from scipy.signal import fftconvolve

from primitives.buffer import SampleBuffer
from shared.errors import ResourceExhausted

log = logging.getLogger(__name__)

IMPULSE_CHANNELS = 2

# Convolver loudness calibration, as browser engines apply it by default
GAIN_CALIBRATION_DB = -58.0
GAIN_CALIBRATION_SR = 44100.0
MIN_POWER = 0.000125

CONVOLUTION_METHODS = ("fft", "direct")


def synthesize_impulse(sr, duration, decay, rng=None, channels=IMPULSE_CHANNELS,
                       max_samples=None) -> SampleBuffer:
    """Exponentially-shaped noise burst.

    Args:
        sr: sample rate of the impulse (match the signal it will be convolved with)
        duration: length in seconds
        decay: envelope exponent, higher = faster fade
        rng: numpy Generator; a fresh unseeded one when None, so two calls
            differ unless the caller passes a seeded generator
        channels: impulse channel count
        max_samples: ceiling on length * channels

    Returns:
        SampleBuffer of int(duration * sr) frames
    """
    if rng is None:
        rng = np.random.default_rng()
    length = max(int(duration * sr), 1)
    if max_samples is not None and length * channels > max_samples:
        raise ResourceExhausted(length * channels, max_samples)
    envelope = (1.0 - np.arange(length, dtype=np.float64) / length) ** decay
    noise = rng.uniform(-1.0, 1.0, size=(channels, length))
    return SampleBuffer(sr, noise * envelope)


def normalization_scale(impulse: SampleBuffer) -> float:
    """Gain that brings a convolution with impulse to roughly unity loudness.

    1 / RMS over all channels (floored at MIN_POWER), then a fixed -58 dB
    calibration, then compensation for sample rate.
    """
    ir = impulse.data.astype(np.float64)
    power = np.sqrt(np.sum(ir * ir) / ir.size) if ir.size else 0.0
    if not np.isfinite(power) or power < MIN_POWER:
        power = MIN_POWER
    scale = 1.0 / power
    scale *= 10.0 ** (GAIN_CALIBRATION_DB * 0.05)
    scale *= GAIN_CALIBRATION_SR / impulse.sample_rate
    return float(scale)


def _convolve_channel(x, h, method):
    n = len(x)
    if n == 0:
        return np.zeros(0)
    if method == "fft":
        return fftconvolve(x, h)[:n]
    if method == "direct":
        return _direct_convolve(x, h, method="direct")[:n]
    raise ValueError(f"Unknown convolution method '{method}'. Options: {list(CONVOLUTION_METHODS)}")


def convolve(buffer: SampleBuffer, impulse: SampleBuffer, method="fft",
             normalize=True) -> SampleBuffer:
    """Convolve each channel with the impulse, truncated to the input length.

    Channel routing: a mono input is convolved with every impulse channel and
    the results averaged; otherwise channel c uses impulse channel
    c % impulse.channels.
    """
    if impulse.sample_rate != buffer.sample_rate:
        log.warning("impulse at %d Hz convolved with %d Hz signal",
                    impulse.sample_rate, buffer.sample_rate)
    x = buffer.data.astype(np.float64)
    h = impulse.data.astype(np.float64)
    if normalize:
        h = h * normalization_scale(impulse)

    out = np.empty(x.shape, dtype=np.float64)
    if buffer.channels == 1:
        out[0] = sum(_convolve_channel(x[0], h[k], method)
                     for k in range(impulse.channels)) / impulse.channels
    else:
        for ch in range(buffer.channels):
            out[ch] = _convolve_channel(x[ch], h[ch % impulse.channels], method)
    return buffer.with_data(out)
