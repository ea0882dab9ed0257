"""Logging utilities for libpower."""

import logging
from rich.logging import RichHandler

def setup_logging(quiet: bool = False) -> None:
    """Configures the logging for the application.

    Args:
        quiet: If True, set log level to WARNING (show only warnings/errors).
               If False (default), set to DEBUG (verbose mode).
    """
    level = logging.WARNING if quiet else logging.DEBUG

    # Only configure if not already configured (prevents multiple calls)
    if not logging.getLogger().hasHandlers():
        # Cell and pin names come straight from library files, so markup stays off
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, markup=False)]
        )
    else:
        logging.getLogger().setLevel(level)
