"""Offline WAV rendering for the converter.

Usage:
    python -m converter.main input.wav --effect lofi [--rate 0.85] [-o out.wav]
                             [--seed 7] [--sample-rate 44100] [--strict]
                             [--params params.json]
    python -m converter.main --list
"""

import argparse
import json
import logging
import os

from converter.engine.catalog import MODERN, RETRO, list_effects, uses_convolution
from converter.engine.convert import render_effect
from converter.engine.wav import save_wav
from shared.audio import load_wav

log = logging.getLogger(__name__)


def load_params(path):
    with open(path) as f:
        return json.load(f)


def default_output_path(input_path, effect):
    """<input stem>_<effect>.wav next to the input."""
    stem, _ = os.path.splitext(input_path)
    return f"{stem}_{effect}.wav"


def format_effect_list():
    lines = []
    for category in (RETRO, MODERN):
        lines.append(f"{category.upper()}:")
        for e in list_effects(category):
            verb = "  (reverb)" if uses_convolution(e) else ""
            lines.append(f"  {e.name:<14} {e.label:<16} rate {e.playback_rate:g}{verb}")
    return "\n".join(lines)


def build_parser():
    parser = argparse.ArgumentParser(description="Render audio through a retro/modern effect preset")
    parser.add_argument("input", nargs="?", help="Input WAV file")
    parser.add_argument("-e", "--effect", help="Effect name (see --list)")
    parser.add_argument("-o", "--output", help="Output WAV file (default: <input>_<effect>.wav)")
    parser.add_argument("--rate", type=float, help="Override playback rate")
    parser.add_argument("--params", help="JSON file with render params")
    parser.add_argument("--seed", type=int, help="Reverb noise seed")
    parser.add_argument("--sample-rate", type=int, help="Output sample rate in Hz")
    parser.add_argument("--strict", action="store_true", help="Fail on unknown effect names")
    parser.add_argument("--list", action="store_true", help="List effects and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every stage")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.list:
        print(format_effect_list())
        return 0
    if not args.input or not args.effect:
        parser.error("input and --effect are required")

    params = load_params(args.params) if args.params else {}
    if args.seed is not None:
        params["seed"] = args.seed
    if args.sample_rate is not None:
        params["sample_rate"] = args.sample_rate
    if args.strict:
        params["strict_effects"] = True

    source = load_wav(args.input)
    ch = "stereo" if source.channels == 2 else f"{source.channels} ch"
    log.info("Loaded %s: %d samples, %d Hz, %s",
             args.input, source.frame_count, source.sample_rate, ch)

    result = render_effect(source, args.effect, args.rate, params)
    output = args.output or default_output_path(args.input, result.effect)
    n_bytes = save_wav(output, result.buffer)
    print(f"Saved {output} ({n_bytes} bytes, {result.buffer.duration:.2f}s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
