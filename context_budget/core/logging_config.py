"""Logging setup for command-line entry points."""

import logging
import sys

from context_budget.core.config import Settings

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger; ``level`` overrides ``Settings.log_level``."""
    name = (level or Settings().log_level).upper()
    logging.basicConfig(
        level=_LEVELS.get(name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Keep HTTP client chatter out of the chunking logs.
    for noisy in ("httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
