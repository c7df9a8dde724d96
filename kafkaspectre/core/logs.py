"""Process-wide logging setup for the CLI."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr; WARNING by default, DEBUG when *verbose*."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    # kafka-python is very chatty at INFO
    logging.getLogger("kafka").setLevel(logging.DEBUG if verbose else logging.WARNING)
