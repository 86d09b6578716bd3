from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """Configure root logging once per CLI invocation."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level: {level!r}")
        level = resolved
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # sklearn/joblib chatter stays at WARNING unless DEBUG was asked for
    if level > logging.DEBUG:
        logging.getLogger("joblib").setLevel(logging.WARNING)
