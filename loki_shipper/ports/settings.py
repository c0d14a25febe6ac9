"""Settings port definition (DTO)."""

from dataclasses import dataclass, field
from typing import Any

from loki_shipper.ports.records import Severity

__all__ = ["SettingsPort"]


@dataclass(frozen=True)
class SettingsPort:
    """Runtime settings for the delivery engine.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        entrypoint: Scheme, host and port of the Loki server.
        basic_auth: (username, password) pair, or None when not used.
        labels: Labels attached to every stream.
        context: Context merged into every record.
        client_name: Name of the emitting system.
        timeout: Per-request timeout in seconds.
        level: Minimum severity shipped.
        batch_size: Records per push when shipping from the CLI.
        ready_check: Probe the Loki readiness endpoint before shipping.
    """

    entrypoint: str
    basic_auth: tuple[str, str] | None = None
    labels: dict[str, str] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    client_name: str | None = None
    timeout: float = 1.0
    level: Severity = Severity.DEBUG
    batch_size: int = 100
    ready_check: bool = False
