"""Container healthcheck: can this shipper reach a Loki push endpoint?"""

import logging

from loki_shipper.adapters.driven.config.settings import load_settings
from loki_shipper.adapters.driven.http.client import HttpTransport
from loki_shipper.adapters.driven.logging.logging_config import configure_logs
from loki_shipper.core.entrypoint import push_url, ready_url

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Check the LOKI_* environment, and Loki itself when LOKI_READY_CHECK is on.

    Returns:
        0 if the shipper could start, 1 otherwise.
    """
    configure_logs()

    try:
        settings = load_settings()
    except Exception as exc:
        logger.error(f"Shipper healthcheck FAILED, bad LOKI_* settings: {exc}")
        return 1

    target = push_url(settings.entrypoint)
    if settings.ready_check:
        with HttpTransport(timeout=settings.timeout) as transport:
            if not transport.probe(ready_url(settings.entrypoint)):
                logger.error(f"Shipper healthcheck FAILED, Loki not ready for {target}")
                return 1

    logger.info(f"Shipper healthcheck OK, pushing to {target}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
