"""
Centralized logging configuration.
"""

import logging
import sys
from typing import Optional

from .settings import Settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure the root logger once for the process.

    Args:
        settings: Settings instance, defaults are used if None
    """
    if settings is None:
        settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
