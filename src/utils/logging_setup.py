from __future__ import annotations

import logging
import sys

_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def setup_logging(verbosity: int = 0) -> None:
    """Configure root logging on stderr; ``-v`` raises to INFO, ``-vv`` and above to DEBUG."""

    level = _LEVELS.get(verbosity, logging.DEBUG)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

    # Connection-level chatter only at -vvv.
    noisy_level = logging.DEBUG if verbosity >= 3 else logging.WARNING
    logging.getLogger("urllib3").setLevel(noisy_level)
    logging.getLogger("requests").setLevel(noisy_level)


__all__ = ["setup_logging"]
