"""Application entrypoint: ship lines read from stdin to Loki."""

import logging
import sys
from collections.abc import Iterable

from loki_shipper.adapters.driven.config.settings import load_settings
from loki_shipper.adapters.driven.formatting.loki_formatter import LokiFormatter
from loki_shipper.adapters.driven.http.client import HttpTransport
from loki_shipper.adapters.driven.logging.logging_config import configure_logs
from loki_shipper.adapters.driven.metrics.delivery_metrics import Metrics
from loki_shipper.adapters.driving.signals import install_exit_on_sigterm
from loki_shipper.core.delivery import DeliveryEngine
from loki_shipper.core.entrypoint import ready_url
from loki_shipper.ports.records import LogRecord, Severity
from loki_shipper.ports.settings import SettingsPort
from loki_shipper.ports.sink import LogSinkPort

__all__ = ["main", "run", "ship_lines", "optional_ready_check"]

logger = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130


def main() -> int:
    """Start the Loki shipper.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Optionally probe Loki readiness.
    4. Ship stdin lines in batches.
    5. Drain in-flight pushes on exit, including SIGTERM and Ctrl+C.

    Returns:
        Process exit code; 130 when interrupted with Ctrl+C.
    """
    configure_logs()
    logger.info("Starting Loki shipper...")

    try:
        return run()
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
        return INTERRUPTED_EXIT_CODE


def run() -> int:
    """Load settings and ship stdin until it is exhausted."""
    try:
        config = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check LOKI_ENTRYPOINT and that LOKI_BASIC_AUTH, LOKI_LABELS "
            "and LOKI_CONTEXT hold valid JSON.",
            exc,
        )
        return 1

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = config.to_port()

    install_exit_on_sigterm()
    metrics = Metrics()
    formatter = LokiFormatter(
        labels=settings_port.labels,
        context=settings_port.context,
        system_name=settings_port.client_name,
    )

    with HttpTransport(timeout=settings_port.timeout) as transport:
        if not optional_ready_check(settings_port, transport):
            return 1

        with DeliveryEngine(settings_port, transport, formatter, metrics=metrics) as engine:
            shipped = ship_lines(engine, sys.stdin, batch_size=settings_port.batch_size)

        logger.info(f"Shipped {shipped} line(s). Delivery metrics: {metrics}")

    return 0


def ship_lines(sink: LogSinkPort, lines: Iterable[str], *, batch_size: int) -> int:
    """Ship text lines as INFO records, ``batch_size`` per push.

    Args:
        sink: Where batches go.
        lines: Input lines; blank lines are skipped.
        batch_size: Maximum records per push.

    Returns:
        Number of records shipped.
    """
    batch: list[LogRecord] = []
    shipped = 0

    for line in lines:
        text = line.rstrip("\r\n")
        if not text.strip():
            continue
        batch.append(LogRecord(level=Severity.INFO, message=text))
        if len(batch) >= batch_size:
            sink.send_batch(batch)
            shipped += len(batch)
            batch = []

    if batch:
        sink.send_batch(batch)
        shipped += len(batch)

    return shipped


def optional_ready_check(settings_port: SettingsPort, transport: HttpTransport) -> bool:
    """Probe Loki readiness before shipping.

    Only runs if LOKI_READY_CHECK is enabled.

    Args:
        settings_port: Runtime settings.
        transport: HTTP transport for probing.

    Returns:
        True if ready or check disabled, False if check failed.
    """
    if settings_port.ready_check:
        url = ready_url(settings_port.entrypoint)
        logger.info(f"Performing readiness check on {url}...")
        if not transport.probe(url=url):
            logger.error(f"Readiness check failed for {url}, aborting startup")
            return False

        logger.info("Readiness check passed, starting shipping...")
    return True


if __name__ == "__main__":
    raise SystemExit(main())
