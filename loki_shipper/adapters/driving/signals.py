"""Signal handling for graceful shutdown."""

import logging
import signal
from types import FrameType

__all__ = ["install_exit_on_sigterm"]

logger = logging.getLogger(__name__)


def install_exit_on_sigterm() -> None:
    """Turn SIGTERM into ``SystemExit`` so ``with`` blocks unwind.

    On Docker/Kubernetes, SIGTERM is sent 30s before SIGKILL; raising
    SystemExit lets the delivery engine drain in-flight pushes on the
    way out. SIGINT already raises KeyboardInterrupt.
    """

    def handle_signal(signum: int, frame: FrameType | None) -> None:
        """Signal handler that raises SystemExit on SIGTERM."""
        logger.info("Termination signal received, initiating graceful shutdown...")
        raise SystemExit(128 + signum)

    signal.signal(signal.SIGTERM, handle_signal)
