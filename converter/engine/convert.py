"""Main render entry point for the converter.

    SampleBuffer -> catalog lookup -> render_graph (resample, stages, clip)
                 -> encode_wav -> RenderResult(buffer, wav)

All callers -- CLI, tests, embedding apps -- use render_effect().
"""

import logging
import time
from dataclasses import dataclass

import numpy as np

from converter.engine.catalog import PASSTHROUGH, lookup
from converter.engine.graph import render_graph
from converter.engine.params import merge_params
from converter.engine.wav import encode_wav
from primitives.buffer import SampleBuffer, check_rate
from shared.errors import UnknownEffect

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderResult:
    buffer: SampleBuffer
    wav: bytes
    effect: str
    playback_rate: float

    @property
    def passthrough(self):
        return lookup(self.effect) is None


def render_effect(source: SampleBuffer, effect, rate=None, params=None,
                  rng=None) -> RenderResult:
    """Render source through a catalog effect and encode the result.

    Args:
        source: decoded input audio
        effect: Effect member or effect name ("lofi", "8bit", ...)
        rate: playback rate, None for the effect's default
        params: overrides for default_params()
        rng: numpy Generator for reverb impulses, overrides params["seed"]

    Returns:
        RenderResult with the clipped output buffer and its WAV bytes.
        An unknown effect name renders the resampled dry signal unless
        params["strict_effects"] is set, in which case UnknownEffect is raised.
    """
    params = merge_params(params)
    entry = lookup(effect)
    if entry is None:
        if params["strict_effects"]:
            raise UnknownEffect(effect)
        log.warning("unknown effect %r, rendering dry signal", effect)
        name, graph, default_rate = str(effect), PASSTHROUGH, 1.0
    else:
        name, graph, default_rate = entry.name, entry.graph, entry.playback_rate

    rate = check_rate(default_rate if rate is None else rate)
    if rng is None:
        rng = np.random.default_rng(params["seed"])

    t0 = time.perf_counter()
    out = render_graph(source, graph, rate, params, rng)
    wav = encode_wav(out)
    elapsed = time.perf_counter() - t0

    rtf = out.duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %s %.1fs audio in %.3fs (rate %.2f, %d ch, %.0fx RT)",
             name, out.duration, elapsed, rate, out.channels, rtf)
    return RenderResult(out, wav, name, rate)
