"""
chunkscribe.logging - Package logger and verbosity setup.

Modules log through ``from chunkscribe.logging import logger``. The HTTP
stack under the OpenAI SDK is kept one level quieter than the package.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("chunkscribe")

HTTP_LOGGERS = ("openai", "httpx", "httpcore")


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for a chunkscribe run.

    Args:
        verbose: If True, log chunkscribe at DEBUG and the HTTP stack at INFO;
            otherwise both at WARNING
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    logger.setLevel(level)

    http_level = logging.INFO if verbose else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
