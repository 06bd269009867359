"""
Logging setup shared by the server and command-line entry points
"""

import logging
from typing import Optional

from .settings import LOGGING_CONFIG


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    level_name = (level or LOGGING_CONFIG["level"]).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOGGING_CONFIG["format"],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
