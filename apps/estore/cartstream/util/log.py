"""Logging helpers shared by the stream service."""
from __future__ import annotations

import logging
import os
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str = "cartstream") -> logging.Logger:
    """Return a logger that writes to stdout, configuring the root package once."""
    root = logging.getLogger("apps.estore.cartstream")
    if not root.handlers:
        root.setLevel(os.getenv("CARTSTREAM_LOG_LEVEL", "INFO").upper())
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    return logging.getLogger(name)
