#!/usr/bin/env python3
"""Converter — render audio files through effect presets."""

import logging
import sys

from shared.errors import RenderError

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")
log = logging.getLogger("converter")


def main(argv=None):
    from converter.audio.render import main as render_main
    try:
        return render_main(argv)
    except RenderError as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
