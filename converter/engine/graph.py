"""Effect graphs — declarative stage topology plus the executor that runs it.

A GraphSpec is a DAG from the reserved node "source" to the reserved node
"sink". Stages are immutable StageSpec records tagged with a StageKind;
the executor dispatches on the tag.

Signal flow of a render:
    Source -> Resample(rate) -> stages in topological order -> Sink -> Clip

Fan-out hands the same buffer to every branch (buffers are read-only, so no
copy is needed). Fan-in only happens at a MIXER, which sums its inputs with
per-input gains; every other stage, and the sink, takes exactly one input.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from graphlib import CycleError, TopologicalSorter

import numpy as np

from converter.engine.params import default_params
from primitives.buffer import SampleBuffer, resample
from primitives.convolution import convolve, synthesize_impulse
from primitives.filters import FilterKind, FilterSpec, apply_biquad, DEFAULT_Q
from primitives.shaper import CurveSpec, ShapingCurve, apply_shaper
from shared.errors import GraphError

log = logging.getLogger(__name__)

SOURCE = "source"
SINK = "sink"


class StageKind(Enum):
    BIQUAD = "biquad"
    SHAPER = "shaper"
    CONVOLVER = "convolver"
    GAIN = "gain"
    MIXER = "mixer"


@dataclass(frozen=True)
class ReverbSpec:
    duration: float         # impulse length in seconds
    decay: float            # envelope exponent
    normalize: bool = True  # loudness-calibrate the impulse


@dataclass(frozen=True)
class MixSpec:
    weights: tuple = ()     # ((input stage name, gain), ...); unlisted inputs get 1.0

    def gain_for(self, name):
        return dict(self.weights).get(name, 1.0)


@dataclass(frozen=True)
class StageSpec:
    name: str
    kind: StageKind
    settings: object = None

    @classmethod
    def biquad(cls, name, kind: FilterKind, frequency, q=DEFAULT_Q, gain_db=0.0):
        return cls(name, StageKind.BIQUAD, FilterSpec(kind, frequency, q, gain_db))

    @classmethod
    def shaper(cls, name, curve: CurveSpec):
        return cls(name, StageKind.SHAPER, curve)

    @classmethod
    def reverb(cls, name, duration, decay, normalize=True):
        return cls(name, StageKind.CONVOLVER, ReverbSpec(duration, decay, normalize))

    @classmethod
    def gain(cls, name, gain):
        return cls(name, StageKind.GAIN, float(gain))

    @classmethod
    def mixer(cls, name, weights):
        return cls(name, StageKind.MIXER, MixSpec(tuple(weights.items())))


@dataclass(frozen=True)
class GraphSpec:
    stages: tuple
    connections: tuple      # ((from, to), ...)
    order: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "stages", tuple(self.stages))
        object.__setattr__(self, "connections", tuple(tuple(c) for c in self.connections))
        object.__setattr__(self, "order", _validate(self.stages, self.connections))

    @classmethod
    def chain(cls, *stages):
        """Linear graph: source -> stages[0] -> ... -> stages[-1] -> sink."""
        names = [SOURCE] + [s.name for s in stages] + [SINK]
        return cls(stages, tuple(zip(names[:-1], names[1:])))

    @classmethod
    def dry_wet(cls, stages, reverb: StageSpec, dry, wet, mix_name="mix"):
        """Chain stages, then split into a dry path and a reverb path.

            source -> stages -> +---------------> mix(dry) -> sink
                                +-> reverb -----> mix(wet)
        """
        names = [SOURCE] + [s.name for s in stages]
        tap = names[-1]
        mixer = StageSpec.mixer(mix_name, {tap: dry, reverb.name: wet})
        connections = list(zip(names[:-1], names[1:]))
        connections += [(tap, reverb.name), (tap, mix_name),
                        (reverb.name, mix_name), (mix_name, SINK)]
        return cls(tuple(stages) + (reverb, mixer), tuple(connections))

    @classmethod
    def passthrough(cls):
        return cls((), ((SOURCE, SINK),))

    def stage(self, name) -> StageSpec:
        for s in self.stages:
            if s.name == name:
                return s
        raise KeyError(name)

    def inputs(self, name):
        """Upstream node names feeding name, in connection order."""
        return tuple(src for src, dst in self.connections if dst == name)

    def outputs(self, name):
        return tuple(dst for src, dst in self.connections if src == name)


def _validate(stages, connections):
    """Check structure and return the stage names in execution order."""
    by_name = {}
    for s in stages:
        if s.name in (SOURCE, SINK):
            raise GraphError(f"stage name '{s.name}' is reserved")
        if s.name in by_name:
            raise GraphError(f"duplicate stage name '{s.name}'")
        if not isinstance(s.kind, StageKind):
            raise GraphError(f"stage '{s.name}' has unknown kind {s.kind!r}")
        by_name[s.name] = s

    nodes = set(by_name) | {SOURCE, SINK}
    seen = set()
    for edge in connections:
        if len(edge) != 2:
            raise GraphError(f"connection must be (from, to), got {edge!r}")
        src, dst = edge
        if src not in nodes or dst not in nodes:
            raise GraphError(f"connection {src!r} -> {dst!r} references an unknown node")
        if dst == SOURCE or src == SINK:
            raise GraphError(f"connection {src!r} -> {dst!r} runs against the signal flow")
        if edge in seen:
            raise GraphError(f"duplicate connection {src!r} -> {dst!r}")
        seen.add(edge)

    ordered = [SOURCE, *by_name, SINK]
    preds = {n: [src for src, dst in connections if dst == n] for n in ordered}
    succs = {n: [dst for src, dst in connections if src == n] for n in ordered}

    if len(preds[SINK]) != 1:
        raise GraphError(f"sink needs exactly one input, has {len(preds[SINK])}")
    for name, s in by_name.items():
        n_in = len(preds[name])
        if s.kind == StageKind.MIXER:
            if n_in < 1:
                raise GraphError(f"mixer '{name}' has no inputs")
            stray = [k for k, _ in s.settings.weights if k not in preds[name]]
            if stray:
                raise GraphError(f"mixer '{name}' weights unconnected inputs {stray}")
        elif n_in != 1:
            raise GraphError(f"stage '{name}' needs exactly one input, has {n_in}")
        if not succs[name]:
            raise GraphError(f"stage '{name}' does not reach the sink")

    try:
        order = tuple(TopologicalSorter(preds).static_order())
    except CycleError as e:
        raise GraphError(f"graph has a cycle: {e.args[1]}") from None
    return tuple(n for n in order if n in by_name)


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

@dataclass
class _RenderContext:
    rng: np.random.Generator
    convolution: str = "fft"
    max_samples: int | None = None


# Runners take (stage, inputs, names, ctx); names[i] is the node inputs[i] came from

def _run_biquad(stage, inputs, names, ctx):
    return apply_biquad(inputs[0], stage.settings)


def _run_shaper(stage, inputs, names, ctx):
    return apply_shaper(inputs[0], ShapingCurve.from_spec(stage.settings))


def _run_convolver(stage, inputs, names, ctx):
    spec = stage.settings
    x = inputs[0]
    ir = synthesize_impulse(x.sample_rate, spec.duration, spec.decay, ctx.rng,
                            max_samples=ctx.max_samples)
    return convolve(x, ir, method=ctx.convolution, normalize=spec.normalize)


def _run_gain(stage, inputs, names, ctx):
    x = inputs[0]
    return x.with_data(x.data.astype(np.float64) * stage.settings)


def _run_mixer(stage, inputs, names, ctx):
    out = np.zeros(inputs[0].data.shape, dtype=np.float64)
    for name, x in zip(names, inputs):
        out += x.data * stage.settings.gain_for(name)
    return inputs[0].with_data(out)


_RUNNERS = {
    StageKind.BIQUAD: _run_biquad,
    StageKind.SHAPER: _run_shaper,
    StageKind.CONVOLVER: _run_convolver,
    StageKind.GAIN: _run_gain,
    StageKind.MIXER: _run_mixer,
}


def execute_graph(graph: GraphSpec, buffer: SampleBuffer, rng=None,
                  convolution="fft", max_samples=None) -> SampleBuffer:
    """Run every stage of graph on buffer and return the sink input, unclipped.

    Each intermediate buffer is released once its last consumer has run.
    """
    ctx = _RenderContext(rng if rng is not None else np.random.default_rng(),
                         convolution, max_samples)
    signals = {SOURCE: buffer}
    pending = {SOURCE: len(graph.outputs(SOURCE))}

    for name in graph.order:
        stage = graph.stage(name)
        upstream = graph.inputs(name)
        inputs = [signals[u] for u in upstream]
        t0 = time.perf_counter()
        out = _RUNNERS[stage.kind](stage, inputs, upstream, ctx)
        log.debug("stage %s (%s) %.3fs", name, stage.kind.value, time.perf_counter() - t0)

        signals[name] = out
        pending[name] = len(graph.outputs(name))
        for u in upstream:
            pending[u] -= 1
            if pending[u] == 0:
                del signals[u]

    return signals[graph.inputs(SINK)[0]]


def clip(buffer: SampleBuffer) -> SampleBuffer:
    """Hard clamp to [-1, 1]."""
    return buffer.with_data(np.clip(buffer.data, -1.0, 1.0))


def render_graph(source: SampleBuffer, graph: GraphSpec, rate, params=None,
                 rng=None) -> SampleBuffer:
    """Resample source by rate, run graph, clip once at the end.

    Args:
        source: decoded input
        graph: stage topology
        rate: playback rate, > 0
        params: render params dict (see converter/engine/params.py)
        rng: numpy Generator for reverb impulses; seeded from params["seed"]
            when None

    Returns:
        SampleBuffer with the source channel count and ceil(frames / rate) frames
    """
    if params is None:
        params = default_params()
    if rng is None:
        rng = np.random.default_rng(params.get("seed"))
    max_samples = params.get("max_samples")

    resampled = resample(source, rate, params.get("sample_rate"), max_samples)
    out = execute_graph(graph, resampled, rng, params.get("convolution", "fft"),
                        max_samples)
    return clip(out)
