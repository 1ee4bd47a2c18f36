"""Test biquad filters — cookbook responses, state continuity, degenerate settings.

Run: uv run pytest tests/test_biquad.py

Responses are checked against scipy.signal (lfilter / freqz) rather than by ear.
"""

import os
import sys

import numpy as np
import pytest
from scipy.signal import freqz, lfilter

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.buffer import SampleBuffer
from primitives.filters import (BiquadFilter, FilterKind, FilterSpec, apply_biquad,
                                biquad_coeffs)

SR = 44100


def noise(n=4096, channels=1, seed=0):
    rng = np.random.default_rng(seed)
    return SampleBuffer(SR, rng.uniform(-0.5, 0.5, size=(channels, n)))


def response(spec, freqs):
    b0, b1, b2, a1, a2 = biquad_coeffs(spec, SR)
    _, h = freqz([b0, b1, b2], [1.0, a1, a2], worN=np.asarray(freqs, dtype=float), fs=SR)
    return np.abs(h)


# ---------------------------------------------------------------------------
# Test 1: Sample loop matches a reference IIR
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("kind", list(FilterKind))
def test_matches_lfilter(kind):
    spec = FilterSpec(kind, 1000, q=1.5, gain_db=6)
    buf = noise()
    b0, b1, b2, a1, a2 = biquad_coeffs(spec, SR)
    ref = lfilter([b0, b1, b2], [1.0, a1, a2], buf.data[0].astype(np.float64))
    out = apply_biquad(buf, spec)
    np.testing.assert_allclose(out.data[0], ref, atol=1e-5)


# ---------------------------------------------------------------------------
# Test 2: Cookbook magnitude responses
# ---------------------------------------------------------------------------
def test_lowpass_response():
    dc, cutoff = response(FilterSpec(FilterKind.LOWPASS, 1000), [0.0, 1000.0])
    assert dc == pytest.approx(1.0, abs=1e-9)
    # |H(f0)| = Q for the cookbook lowpass
    assert cutoff == pytest.approx(0.707, abs=1e-3)


def test_highpass_response():
    dc, high = response(FilterSpec(FilterKind.HIGHPASS, 300), [0.0, 20000.0])
    assert dc == pytest.approx(0.0, abs=1e-9)
    assert high == pytest.approx(1.0, abs=1e-2)


def test_peaking_gain_at_center():
    (h,) = response(FilterSpec(FilterKind.PEAKING, 1000, q=2, gain_db=6), [1000.0])
    assert h == pytest.approx(10 ** (6 / 20), rel=1e-6)


def test_notch_kills_center():
    dc, center = response(FilterSpec(FilterKind.NOTCH, 800, q=1.5), [0.0, 800.0])
    assert dc == pytest.approx(1.0, abs=1e-9)
    assert center < 1e-6


def test_shelves():
    low = response(FilterSpec(FilterKind.LOWSHELF, 150, gain_db=8), [0.0, SR / 2])
    assert low[0] == pytest.approx(10 ** (8 / 20), rel=1e-6)
    assert low[1] == pytest.approx(1.0, abs=1e-3)

    high = response(FilterSpec(FilterKind.HIGHSHELF, 4000, gain_db=-3), [0.0, SR / 2])
    assert high[0] == pytest.approx(1.0, abs=1e-6)
    assert high[1] == pytest.approx(10 ** (-3 / 20), rel=1e-6)


# ---------------------------------------------------------------------------
# Test 3: State carries across blocks, never across channels
# ---------------------------------------------------------------------------
def test_block_processing_matches_whole():
    spec = FilterSpec(FilterKind.LOWPASS, 500, q=3)
    x = noise(3000).data[0]
    whole = BiquadFilter(spec, SR).process_channel(0, x)

    filt = BiquadFilter(spec, SR)
    parts = [filt.process_channel(0, x[i:i + 700]) for i in range(0, len(x), 700)]
    np.testing.assert_allclose(np.concatenate(parts), whole, atol=1e-12)


def test_reset_clears_state():
    spec = FilterSpec(FilterKind.HIGHPASS, 200)
    x = noise(500).data[0]
    filt = BiquadFilter(spec, SR)
    first = filt.process_channel(0, x)
    filt.reset()
    np.testing.assert_array_equal(filt.process_channel(0, x), first)


def test_channels_independent():
    rng = np.random.default_rng(3)
    data = np.zeros((2, 2000))
    data[0] = rng.uniform(-0.5, 0.5, 2000)
    out = apply_biquad(SampleBuffer(SR, data), FilterSpec(FilterKind.PEAKING, 1000, 5, 10))
    assert np.all(out.data[1] == 0.0)

    mono = apply_biquad(SampleBuffer(SR, data[0]), FilterSpec(FilterKind.PEAKING, 1000, 5, 10))
    np.testing.assert_array_equal(out.data[0], mono.data[0])


def test_channel_count_mismatch():
    filt = BiquadFilter(FilterSpec(FilterKind.LOWPASS, 1000), SR, channels=1)
    with pytest.raises(ValueError):
        filt.process(noise(channels=2))


# ---------------------------------------------------------------------------
# Test 4: Degenerate parameters stay finite
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("kind", list(FilterKind))
@pytest.mark.parametrize("frequency", [-100.0, 0.0, 12000.0, SR / 2, 30000.0])
@pytest.mark.parametrize("q", [-1.0, 0.0, 0.707])
def test_degenerate_settings_finite(kind, frequency, q):
    spec = FilterSpec(kind, frequency, q=q, gain_db=6)
    assert all(np.isfinite(biquad_coeffs(spec, SR)))
    out = apply_biquad(noise(1000), spec)
    assert np.all(np.isfinite(out.data))


def test_band_edges():
    x = noise(1000)
    above = 30000.0
    np.testing.assert_array_equal(apply_biquad(x, FilterSpec(FilterKind.LOWPASS, above)).data,
                                  x.data)
    assert np.all(apply_biquad(x, FilterSpec(FilterKind.HIGHPASS, above)).data == 0.0)
    assert np.all(apply_biquad(x, FilterSpec(FilterKind.LOWPASS, 0.0)).data == 0.0)
    np.testing.assert_array_equal(apply_biquad(x, FilterSpec(FilterKind.HIGHPASS, 0.0)).data,
                                  x.data)


def test_silence_stays_silent():
    silent = SampleBuffer.silence(SR, 1000, channels=2)
    for kind in FilterKind:
        out = apply_biquad(silent, FilterSpec(kind, 1000, q=2, gain_db=12))
        assert np.all(out.data == 0.0)
