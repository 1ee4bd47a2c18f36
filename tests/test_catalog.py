"""Test the effect catalog — preset table, rates, stage settings, lookup.

Run: uv run pytest tests/test_catalog.py
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from converter.engine.catalog import (CATALOG, MODERN, RETRO, Effect, list_effects, lookup,
                                      uses_convolution)
from converter.engine.graph import SINK, StageKind
from primitives.filters import FilterKind, FilterSpec
from primitives.shaper import CurveKind

NAMES = ["pcspeaker", "8bit", "arcade", "fmsynth", "16bit", "lofi", "bardcore",
         "bassboosted", "synthwave", "nightcore", "slowedreverb", "orchestral"]


def kinds(effect):
    return [lookup(effect).graph.stage(n).kind for n in lookup(effect).graph.order]


# ---------------------------------------------------------------------------
# Test 1: Table contents
# ---------------------------------------------------------------------------
def test_all_effects_present():
    assert [e.name for e in CATALOG.values()] == NAMES
    assert len(list_effects(RETRO)) == 7
    assert len(list_effects(MODERN)) == 5
    assert len(list_effects()) == 12


def test_default_rates():
    rates = {e.name: e.playback_rate for e in CATALOG.values()}
    assert rates.pop("bardcore") == 0.92
    assert rates.pop("nightcore") == 1.3
    assert rates.pop("slowedreverb") == 0.85
    assert all(r == 1.0 for r in rates.values())


def test_catalog_read_only():
    with pytest.raises(TypeError):
        CATALOG[Effect.LOFI] = None


# ---------------------------------------------------------------------------
# Test 2: Lookup
# ---------------------------------------------------------------------------
def test_lookup():
    assert lookup(Effect.LOFI).name == "lofi"
    assert lookup("8bit").effect == Effect.EIGHT_BIT
    assert lookup("  SlowedReverb ").effect == Effect.SLOWED_REVERB
    assert lookup("vaporwave") is None
    assert lookup("") is None


# ---------------------------------------------------------------------------
# Test 3: Stage settings
# ---------------------------------------------------------------------------
def test_lofi_band():
    g = lookup("lofi").graph
    assert g.order == ("lp", "hp")
    assert g.stage("lp").settings == FilterSpec(FilterKind.LOWPASS, 3000)
    assert g.stage("hp").settings == FilterSpec(FilterKind.HIGHPASS, 300)


@pytest.mark.parametrize("name, bits", [("pcspeaker", 3), ("8bit", 6), ("arcade", 6),
                                        ("16bit", 7)])
def test_crush_comes_first(name, bits):
    g = lookup(name).graph
    first = g.stage(g.order[0]).settings
    assert first.kind == CurveKind.CRUSH
    assert first.bits == bits
    assert kinds(name)[1:] == [StageKind.BIQUAD] * (len(g.order) - 1)


@pytest.mark.parametrize("name, duration, decay, dry, wet", [
    ("bardcore", 4.0, 3.0, 0.4, 0.6),
    ("synthwave", 1.8, 3.0, 0.65, 0.35),
    ("slowedreverb", 2.5, 2.0, 0.6, 0.4),
    ("orchestral", 3.5, 2.2, 0.5, 0.5),
])
def test_reverb_presets(name, duration, decay, dry, wet):
    entry = lookup(name)
    assert uses_convolution(entry)
    g = entry.graph
    verb = g.stage("reverb").settings
    assert (verb.duration, verb.decay) == (duration, decay)
    assert g.inputs(SINK) == ("mix",)
    tap, wet_in = g.inputs("mix")
    mix = g.stage("mix").settings
    assert mix.gain_for(tap) == dry
    assert mix.gain_for(wet_in) == wet


def test_dry_effects_have_no_reverb():
    dry = [e.name for e in CATALOG.values() if not uses_convolution(e)]
    assert dry == ["pcspeaker", "8bit", "arcade", "fmsynth", "16bit", "lofi",
                   "bassboosted", "nightcore"]


def test_bassboosted_chain():
    g = lookup("bassboosted").graph
    assert kinds("bassboosted") == [StageKind.BIQUAD] * 3 + [StageKind.SHAPER, StageKind.BIQUAD]
    dist = g.stage("distortion").settings
    assert (dist.kind, dist.drive, dist.ceiling) == (CurveKind.SATURATE, 2.5, 0.9)
    assert g.stage("sub_bass").settings == FilterSpec(FilterKind.LOWSHELF, 60, gain_db=15)


def test_orchestral_notches():
    g = lookup("orchestral").graph
    notches = [g.stage(n).settings.frequency for n in g.order
               if g.stage(n).kind == StageKind.BIQUAD
               and g.stage(n).settings.kind == FilterKind.NOTCH]
    assert notches == [350, 900, 1500, 2500, 3500]
