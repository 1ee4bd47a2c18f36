"""Effect catalog — every preset as data.

Each entry is a GraphSpec plus its default playback rate. The table is built
once at import and exposed read-only; render code dispatches on the Effect
enum, names are only parsed at the API edge by lookup().

Retro:  pcspeaker, 8bit, arcade, fmsynth, 16bit, lofi, bardcore
Modern: bassboosted, synthwave, nightcore, slowedreverb, orchestral
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from converter.engine.graph import GraphSpec, StageKind, StageSpec
from primitives.filters import FilterKind
from primitives.shaper import CurveKind, CurveSpec

LP = FilterKind.LOWPASS
HP = FilterKind.HIGHPASS
PEAK = FilterKind.PEAKING
LOW_SHELF = FilterKind.LOWSHELF
HIGH_SHELF = FilterKind.HIGHSHELF
NOTCH = FilterKind.NOTCH

RETRO = "retro"
MODERN = "modern"


class Effect(Enum):
    PC_SPEAKER = "pcspeaker"
    EIGHT_BIT = "8bit"
    ARCADE = "arcade"
    FM_SYNTH = "fmsynth"
    SIXTEEN_BIT = "16bit"
    LOFI = "lofi"
    BARDCORE = "bardcore"
    BASS_BOOSTED = "bassboosted"
    SYNTHWAVE = "synthwave"
    NIGHTCORE = "nightcore"
    SLOWED_REVERB = "slowedreverb"
    ORCHESTRAL = "orchestral"


@dataclass(frozen=True)
class CatalogEntry:
    effect: Effect
    label: str
    category: str
    playback_rate: float
    graph: GraphSpec

    @property
    def name(self):
        return self.effect.value


def _crush(bits):
    return StageSpec.shaper("crush", CurveSpec(CurveKind.CRUSH, bits=bits))


def _saturate(drive, ceiling, name="saturation"):
    return StageSpec.shaper(name, CurveSpec(CurveKind.SATURATE, drive=drive, ceiling=ceiling))


def _pc_speaker():
    return GraphSpec.chain(
        _crush(3),
        StageSpec.biquad("hp", HP, 400, q=2),
        StageSpec.biquad("beepy", PEAK, 1000, q=5, gain_db=10),
        StageSpec.biquad("lp", LP, 2000, q=3),
    )


def _eight_bit():
    # NES / Game Boy: chips couldn't do deep bass
    return GraphSpec.chain(
        _crush(6),
        StageSpec.biquad("hp", HP, 150),
        StageSpec.biquad("peaking", PEAK, 1000, q=2, gain_db=6),
        StageSpec.biquad("lp", LP, 2500, q=1.5),
    )


def _arcade():
    return GraphSpec.chain(
        _crush(6),
        StageSpec.biquad("hp", HP, 200),
        StageSpec.biquad("mid", PEAK, 1200, q=2, gain_db=5),
        StageSpec.biquad("lp", LP, 4500, q=1.5),
    )


def _fm_synth():
    # YM2612: metallic harmonics, glassy high-mids, punchy bass
    return GraphSpec.chain(
        StageSpec.shaper("fm_distortion", CurveSpec(CurveKind.HARMONIC)),
        StageSpec.biquad("hp", HP, 100, q=1.5),
        StageSpec.biquad("bass", LOW_SHELF, 150, gain_db=5),
        StageSpec.biquad("glassy", PEAK, 3500, q=2, gain_db=8),
        StageSpec.biquad("lp", LP, 12000),
    )


def _sixteen_bit():
    # SNES / Genesis
    return GraphSpec.chain(
        _crush(7),
        StageSpec.biquad("hp", HP, 80),
        StageSpec.biquad("console_char", PEAK, 2500, q=1.5, gain_db=4),
        StageSpec.biquad("lp", LP, 8000, q=0.7),
    )


def _lofi():
    return GraphSpec.chain(
        StageSpec.biquad("lp", LP, 3000),
        StageSpec.biquad("hp", HP, 300),
    )


def _bardcore():
    return GraphSpec.dry_wet(
        (
            StageSpec.biquad("vocal_killer1", NOTCH, 800, q=1.5),
            StageSpec.biquad("vocal_killer2", NOTCH, 1500, q=1.5),
            StageSpec.biquad("vocal_killer3", NOTCH, 3000, q=1.2),
            StageSpec.biquad("hp", HP, 200),
            StageSpec.biquad("lp", LP, 3500),
        ),
        StageSpec.reverb("reverb", 4.0, 3.0),
        dry=0.4, wet=0.6,
    )


def _bass_boosted():
    return GraphSpec.chain(
        StageSpec.biquad("sub_bass", LOW_SHELF, 60, gain_db=15),
        StageSpec.biquad("mid_bass", PEAK, 120, q=1.5, gain_db=12),
        StageSpec.biquad("upper_bass", PEAK, 250, q=1, gain_db=8),
        _saturate(2.5, 0.9, "distortion"),
        StageSpec.biquad("treble_reduce", HIGH_SHELF, 4000, gain_db=-3),
    )


def _synthwave():
    # 80s outrun: analog saturation, warm lows, sparkle, short dense verb
    return GraphSpec.dry_wet(
        (
            _saturate(1.5, 0.95),
            StageSpec.biquad("warmth", LOW_SHELF, 250, gain_db=6),
            StageSpec.biquad("synth_pad", PEAK, 1500, q=1, gain_db=5),
            StageSpec.biquad("sparkle", HIGH_SHELF, 6000, gain_db=4),
        ),
        StageSpec.reverb("reverb", 1.8, 3.0),
        dry=0.65, wet=0.35,
    )


def _nightcore():
    return GraphSpec.chain(
        StageSpec.biquad("treble", HIGH_SHELF, 3000, gain_db=4),
    )


def _slowed_reverb():
    return GraphSpec.dry_wet((), StageSpec.reverb("reverb", 2.5, 2.0), dry=0.6, wet=0.4)


def _orchestral():
    # Notches at vocal formants, then string-section EQ and a large hall
    return GraphSpec.dry_wet(
        (
            StageSpec.biquad("vocal_notch1", NOTCH, 350, q=2),
            StageSpec.biquad("vocal_notch2", NOTCH, 900, q=2),
            StageSpec.biquad("vocal_notch3", NOTCH, 1500, q=2.5),
            StageSpec.biquad("vocal_notch4", NOTCH, 2500, q=2),
            StageSpec.biquad("vocal_notch5", NOTCH, 3500, q=1.5),
            StageSpec.biquad("bass", LOW_SHELF, 150, gain_db=8),
            StageSpec.biquad("low_mid", PEAK, 250, q=1.2, gain_db=6),
            StageSpec.biquad("strings1", PEAK, 800, q=1.5, gain_db=5),
            StageSpec.biquad("strings2", PEAK, 2500, q=1.3, gain_db=6),
            StageSpec.biquad("strings3", PEAK, 5000, q=1.5, gain_db=7),
            StageSpec.biquad("air", HIGH_SHELF, 8000, gain_db=5),
        ),
        StageSpec.reverb("reverb", 3.5, 2.2),
        dry=0.5, wet=0.5,
    )


_ENTRIES = [
    (Effect.PC_SPEAKER, "PC Speaker", RETRO, 1.0, _pc_speaker),
    (Effect.EIGHT_BIT, "8-bit (NES)", RETRO, 1.0, _eight_bit),
    (Effect.ARCADE, "Arcade", RETRO, 1.0, _arcade),
    (Effect.FM_SYNTH, "FM Synth", RETRO, 1.0, _fm_synth),
    (Effect.SIXTEEN_BIT, "16-bit (SNES)", RETRO, 1.0, _sixteen_bit),
    (Effect.LOFI, "Lofi", RETRO, 1.0, _lofi),
    (Effect.BARDCORE, "Bardcore", RETRO, 0.92, _bardcore),
    (Effect.BASS_BOOSTED, "Bass Boosted", MODERN, 1.0, _bass_boosted),
    (Effect.SYNTHWAVE, "Synthwave", MODERN, 1.0, _synthwave),
    (Effect.NIGHTCORE, "Nightcore", MODERN, 1.3, _nightcore),
    (Effect.SLOWED_REVERB, "Slowed + Reverb", MODERN, 0.85, _slowed_reverb),
    (Effect.ORCHESTRAL, "Orchestral", MODERN, 1.0, _orchestral),
]

CATALOG = MappingProxyType({
    effect: CatalogEntry(effect, label, category, rate, build())
    for effect, label, category, rate, build in _ENTRIES
})

PASSTHROUGH = GraphSpec.passthrough()


def lookup(effect):
    """CatalogEntry for an Effect or its name, None when the name is unknown."""
    if isinstance(effect, Effect):
        return CATALOG[effect]
    try:
        return CATALOG[Effect(str(effect).strip().lower())]
    except ValueError:
        return None


def list_effects(category=None):
    """Catalog entries in display order, optionally one category."""
    return [e for e in CATALOG.values() if category is None or e.category == category]


def uses_convolution(entry: CatalogEntry) -> bool:
    """True when the preset has a reverb stage (output is random unless seeded)."""
    return any(s.kind == StageKind.CONVOLVER for s in entry.graph.stages)
