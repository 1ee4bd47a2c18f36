"""Biquad filters — cookbook coefficients plus a stateful per-channel runner.

Difference equation (Direct Form 1):
    y[n] = b0*x[n] + b1*x[n-1] + b2*x[n-2] - a1*y[n-1] - a2*y[n-2]

Coefficients follow the Audio EQ Cookbook, normalized so a0 = 1. Shelves use
the Q form of alpha, so q=0.707 gives the usual unit-slope shelf.

Parameters outside the usable range never raise: q is floored at Q_MIN and the
frequency is clamped to [0, Nyquist], where each type degenerates to a
passthrough, silence or flat gain the same way browser audio engines do.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numba import njit

from primitives.buffer import SampleBuffer

DEFAULT_Q = 0.707
Q_MIN = 1e-4


class FilterKind(Enum):
    LOWPASS = "lowpass"
    HIGHPASS = "highpass"
    PEAKING = "peaking"
    LOWSHELF = "lowshelf"
    HIGHSHELF = "highshelf"
    NOTCH = "notch"


@dataclass(frozen=True)
class FilterSpec:
    kind: FilterKind
    frequency: float
    q: float = DEFAULT_Q
    gain_db: float = 0.0  # peaking / shelves only


@dataclass
class FilterState:
    """Recurrence memory for one channel of one filter stage."""
    x1: float = 0.0  # x[n-1]
    x2: float = 0.0  # x[n-2]
    y1: float = 0.0  # y[n-1]
    y2: float = 0.0  # y[n-2]

    def reset(self):
        self.x1 = self.x2 = self.y1 = self.y2 = 0.0


_PASS = (1.0, 0.0, 0.0, 0.0, 0.0)
_MUTE = (0.0, 0.0, 0.0, 0.0, 0.0)


def biquad_coeffs(spec: FilterSpec, sr):
    """Return normalized (b0, b1, b2, a1, a2) for spec at sample rate sr."""
    kind = spec.kind
    f = min(max(spec.frequency / (sr / 2.0), 0.0), 1.0)
    q = max(float(spec.q), Q_MIN)
    A = 10.0 ** (spec.gain_db / 40.0)

    # Band edges: no interior pole to place, so fall back to the limit response
    if f >= 1.0 or f <= 0.0:
        at_nyquist = f >= 1.0
        if kind == FilterKind.LOWPASS:
            return _PASS if at_nyquist else _MUTE
        if kind == FilterKind.HIGHPASS:
            return _MUTE if at_nyquist else _PASS
        if kind == FilterKind.LOWSHELF:
            return (A * A, 0.0, 0.0, 0.0, 0.0) if at_nyquist else _PASS
        if kind == FilterKind.HIGHSHELF:
            return _PASS if at_nyquist else (A * A, 0.0, 0.0, 0.0, 0.0)
        return _PASS

    w0 = np.pi * f
    cos_w0 = np.cos(w0)
    alpha = np.sin(w0) / (2.0 * q)

    if kind == FilterKind.LOWPASS:
        b0 = (1.0 - cos_w0) / 2.0
        b1 = 1.0 - cos_w0
        b2 = b0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
    elif kind == FilterKind.HIGHPASS:
        b0 = (1.0 + cos_w0) / 2.0
        b1 = -(1.0 + cos_w0)
        b2 = b0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
    elif kind == FilterKind.NOTCH:
        b0 = 1.0
        b1 = -2.0 * cos_w0
        b2 = 1.0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
    elif kind == FilterKind.PEAKING:
        b0 = 1.0 + alpha * A
        b1 = -2.0 * cos_w0
        b2 = 1.0 - alpha * A
        a0 = 1.0 + alpha / A
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha / A
    elif kind == FilterKind.LOWSHELF:
        two_sqrt_A_alpha = 2.0 * np.sqrt(A) * alpha
        b0 = A * ((A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha)
        b1 = 2.0 * A * ((A - 1) - (A + 1) * cos_w0)
        b2 = A * ((A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha)
        a0 = (A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha
        a1 = -2.0 * ((A - 1) + (A + 1) * cos_w0)
        a2 = (A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha
    elif kind == FilterKind.HIGHSHELF:
        two_sqrt_A_alpha = 2.0 * np.sqrt(A) * alpha
        b0 = A * ((A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha)
        b1 = -2.0 * A * ((A - 1) + (A + 1) * cos_w0)
        b2 = A * ((A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha)
        a0 = (A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha
        a1 = 2.0 * ((A - 1) - (A + 1) * cos_w0)
        a2 = (A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha
    else:
        raise ValueError(f"Unknown filter kind '{kind}'.")

    return (float(b0 / a0), float(b1 / a0), float(b2 / a0),
            float(a1 / a0), float(a2 / a0))


@njit(cache=True)
def _biquad(audio, b0, b1, b2, a1, a2, x1, x2, y1, y2):
    """One pass over a channel. Returns the output and the final state."""
    n = len(audio)
    out = np.empty(n, dtype=np.float64)
    for i in range(n):
        x = audio[i]
        y = b0 * x + b1 * x1 + b2 * x2 - a1 * y1 - a2 * y2
        x2 = x1
        x1 = x
        y2 = y1
        y1 = y
        out[i] = y
    return out, x1, x2, y1, y2


class BiquadFilter:
    """One filter stage: fixed coefficients, one FilterState per channel.

    State carries across process() calls, so feeding a channel in blocks gives
    the same result as feeding it whole.
    """

    def __init__(self, spec: FilterSpec, sr, channels=1):
        self.spec = spec
        self.sr = sr
        self.b0, self.b1, self.b2, self.a1, self.a2 = biquad_coeffs(spec, sr)
        self.states = [FilterState() for _ in range(channels)]

    @property
    def coeffs(self):
        return self.b0, self.b1, self.b2, self.a1, self.a2

    def process_channel(self, ch, samples) -> np.ndarray:
        st = self.states[ch]
        x = np.ascontiguousarray(samples, dtype=np.float64)
        out, st.x1, st.x2, st.y1, st.y2 = _biquad(
            x, self.b0, self.b1, self.b2, self.a1, self.a2,
            st.x1, st.x2, st.y1, st.y2)
        return out

    def process(self, buffer: SampleBuffer) -> SampleBuffer:
        if buffer.channels != len(self.states):
            raise ValueError(f"filter has {len(self.states)} channel states, "
                             f"buffer has {buffer.channels} channels")
        out = np.empty(buffer.data.shape, dtype=np.float64)
        for ch in range(buffer.channels):
            out[ch] = self.process_channel(ch, buffer.data[ch])
        return buffer.with_data(out)

    def reset(self):
        for st in self.states:
            st.reset()


def apply_biquad(buffer: SampleBuffer, spec: FilterSpec) -> SampleBuffer:
    """Filter every channel of buffer with a freshly zeroed filter stage."""
    return BiquadFilter(spec, buffer.sample_rate, buffer.channels).process(buffer)
