"""Render settings for the converter.

All callers (CLI, tests, library users) pass the same params dict contract to
render_effect(); start from default_params() and override keys.
"""

SR = 44100

# frames * channels ceiling for one render (one hour of stereo at SR)
MAX_RENDER_SAMPLES = SR * 60 * 60 * 2

CONVOLUTION_NAMES = ["fft", "direct"]


def default_params():
    return {
        "sample_rate": None,            # output rate in Hz, None keeps the source rate
        "max_samples": MAX_RENDER_SAMPLES,
        "seed": None,                   # reverb noise seed, None = new impulse every render
        "strict_effects": False,        # True: unknown effect names raise instead of passing through
        "convolution": "fft",           # "fft" or "direct"
    }


def merge_params(overrides=None):
    """default_params() updated with overrides, rejecting unknown keys."""
    params = default_params()
    if overrides:
        unknown = set(overrides) - set(params)
        if unknown:
            raise ValueError(f"Unknown render params: {sorted(unknown)}")
        params.update(overrides)
    if params["convolution"] not in CONVOLUTION_NAMES:
        raise ValueError(f"Unknown convolution method '{params['convolution']}'. "
                         f"Options: {CONVOLUTION_NAMES}")
    return params
