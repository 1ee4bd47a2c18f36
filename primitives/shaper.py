"""Waveshaper — static nonlinearity through a lookup table.

Each curve is a closed-form function on [-1, 1], tabulated once per render and
read back by nearest index. Input outside [-1, 1] reads the end entries, so
an overdriven signal saturates at the curve edge instead of wrapping.

CURVE_SIZE is odd so the table has an entry at exactly x = 0; every curve here
maps 0 -> 0, which keeps silence silent.

Crush    -- y = round(x * 2^bits) / 2^bits, half-up rounding, no dither.
Saturate -- y = tanh(x * drive) * ceiling.
Harmonic -- y = 0.9 sin(pi x) + 0.3 sin(3 pi x), odd harmonics for the FM tone.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from primitives.buffer import SampleBuffer

CURVE_SIZE = 4097


class CurveKind(Enum):
    CRUSH = "crush"
    SATURATE = "saturate"
    HARMONIC = "harmonic"


@dataclass(frozen=True)
class CurveSpec:
    kind: CurveKind
    bits: int = 8
    drive: float = 1.0
    ceiling: float = 1.0


def crush(x, bits):
    steps = 2.0 ** bits
    return np.floor(x * steps + 0.5) / steps


def saturate(x, drive, ceiling=1.0):
    return np.tanh(x * drive) * ceiling


def harmonic(x):
    return np.sin(x * np.pi) * 0.9 + np.sin(3.0 * x * np.pi) * 0.3


def curve_function(spec: CurveSpec):
    """Map a CurveSpec to a vectorized f(x) on [-1, 1]."""
    if spec.kind == CurveKind.CRUSH:
        return lambda x: crush(x, spec.bits)
    if spec.kind == CurveKind.SATURATE:
        return lambda x: saturate(x, spec.drive, spec.ceiling)
    if spec.kind == CurveKind.HARMONIC:
        return harmonic
    raise ValueError(f"Unknown curve kind '{spec.kind}'.")


class ShapingCurve:
    """Tabulated transfer function, x_k = -1 + 2k / (size - 1)."""

    def __init__(self, table):
        self.table = np.asarray(table, dtype=np.float64)
        if self.table.ndim != 1 or len(self.table) < 2:
            raise ValueError("curve table needs at least 2 entries")

    @classmethod
    def from_function(cls, fn, size=CURVE_SIZE):
        x = np.linspace(-1.0, 1.0, size)
        return cls(fn(x))

    @classmethod
    def from_spec(cls, spec: CurveSpec, size=CURVE_SIZE):
        return cls.from_function(curve_function(spec), size)

    def __len__(self):
        return len(self.table)

    def lookup(self, samples) -> np.ndarray:
        half = (len(self.table) - 1) / 2.0
        x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
        idx = np.rint((x + 1.0) * half).astype(np.int64)
        return self.table[idx]


def apply_shaper(buffer: SampleBuffer, curve) -> SampleBuffer:
    """Run every sample of every channel through curve.

    curve may be a ShapingCurve, a CurveSpec, or any vectorized callable
    (tabulated at CURVE_SIZE).
    """
    if isinstance(curve, CurveSpec):
        curve = ShapingCurve.from_spec(curve)
    elif not isinstance(curve, ShapingCurve):
        curve = ShapingCurve.from_function(curve)
    return buffer.with_data(curve.lookup(buffer.data))
