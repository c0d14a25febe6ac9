"""Console logging setup for the shipper."""

import logging
import sys

from loki_shipper.core.delivery import ERROR_CHANNEL

__all__ = ["configure_logs", "configure_error_channel"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs() -> None:
    """Configure console logging.

    Sets up:
    - Root logger at INFO level.
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Application loggers (loki_shipper) at DEBUG level.
    - The delivery error channel on stderr.
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    # Root logger
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)

    # Suppress verbose framework loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    # Application loggers
    logging.getLogger("loki_shipper").setLevel(logging.DEBUG)

    configure_error_channel()


def configure_error_channel() -> logging.Logger:
    """Route delivery failures straight to stderr.

    The channel does not propagate, so failures to reach Loki never flow
    into a Loki handler attached higher up the logger tree.

    Returns:
        The error channel logger.
    """
    channel = logging.getLogger(ERROR_CHANNEL)
    channel.propagate = False
    if not channel.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        channel.addHandler(handler)
    return channel
