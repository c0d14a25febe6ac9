"""Configuration loading from environment variables."""

import json
import logging
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from loki_shipper.ports.records import Severity
from loki_shipper.ports.settings import SettingsPort

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)
_http_url_adapter = TypeAdapter(HttpUrl)

_TRUE_VALUES = ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime configuration for the Loki shipper.

    Attributes:
        entrypoint: Scheme, host and port of the Loki server.
        basic_auth: (username, password) pair; None when absent or malformed.
        labels: Labels attached to every stream.
        context: Context merged into every record.
        client_name: Name of the emitting system.
        timeout: Per-request timeout in seconds (must be positive).
        level: Minimum severity shipped.
        batch_size: Records per push when shipping from the CLI.
        ready_check: Probe the Loki readiness endpoint before shipping.
    """

    model_config = ConfigDict(frozen=True)

    entrypoint: str = Field(..., description="Base URL of the Loki server.")
    basic_auth: tuple[str, str] | None = Field(
        default=None,
        description="Username and password for Basic authentication.",
    )
    labels: dict[str, str] = Field(default_factory=dict, description="Global stream labels.")
    context: dict[str, Any] = Field(default_factory=dict, description="Global record context.")
    client_name: str | None = Field(default=None, description="Name of the emitting system.")
    timeout: float = Field(default=1.0, gt=0, description="Request timeout in seconds.")
    level: Severity = Field(default=Severity.DEBUG, description="Minimum severity shipped.")
    batch_size: int = Field(default=100, gt=0, description="Records per push from the CLI.")
    ready_check: bool = Field(default=False, description="Probe /ready before shipping.")

    @field_validator("entrypoint")
    @classmethod
    def validate_entrypoint(cls, v: str) -> str:
        """Validate that the entrypoint is a valid HTTP(S) URL.

        Args:
            v: Entrypoint URL to validate.

        Returns:
            The validated URL, unchanged.

        Raises:
            ValueError: If URL is invalid or not http(s).
        """
        try:
            url = _http_url_adapter.validate_python(v)
            if url.scheme not in ("http", "https"):
                raise ValueError("Only http:// and https:// entrypoints allowed")
        except Exception as e:
            raise ValueError(f"Invalid Loki entrypoint: {e}") from e
        return v

    @field_validator("basic_auth", mode="before")
    @classmethod
    def validate_basic_auth(cls, v: Any) -> Any:
        """Treat anything but a two-element pair as no authentication.

        Args:
            v: Raw credentials value.

        Returns:
            The pair, or None.
        """
        if v is None:
            return None
        if isinstance(v, (list, tuple)) and len(v) == 2:
            return tuple(v)
        logger.warning("Ignoring basic auth: expected a [username, password] pair")
        return None

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> Any:
        """Accept severity names as well as numbers."""
        if isinstance(v, str):
            return int(v) if v.isdigit() else Severity.from_name(v)
        return v

    def to_port(self) -> SettingsPort:
        """Wrap settings into the port consumed by core."""
        return SettingsPort(
            entrypoint=self.entrypoint,
            basic_auth=self.basic_auth,
            labels=dict(self.labels),
            context=dict(self.context),
            client_name=self.client_name,
            timeout=self.timeout,
            level=self.level,
            batch_size=self.batch_size,
            ready_check=self.ready_check,
        )


def _json_env(name: str, default: Any) -> Any:
    """Read an optional JSON-encoded environment variable.

    Raises:
        ValueError: If the variable holds invalid JSON.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} contains invalid JSON: {e}") from e


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Required environment variables:
    - LOKI_ENTRYPOINT: HTTP(S) URL of the Loki server.

    Optional:
    - LOKI_BASIC_AUTH: JSON array ["username", "password"].
    - LOKI_LABELS: JSON object of global labels.
    - LOKI_CONTEXT: JSON object of global context.
    - LOKI_CLIENT_NAME: Name of the emitting system.
    - LOKI_TIMEOUT: Request timeout in seconds.
    - LOKI_LEVEL: Minimum severity name.
    - LOKI_BATCH_SIZE: Records per push from the CLI.
    - LOKI_READY_CHECK: Probe /ready before shipping (true/false).

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If required env vars are missing.
        ValueError: If configuration is invalid.
    """
    try:
        entrypoint = os.environ["LOKI_ENTRYPOINT"]
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    values: dict[str, Any] = {
        "entrypoint": entrypoint,
        "basic_auth": _json_env("LOKI_BASIC_AUTH", None),
        "labels": _json_env("LOKI_LABELS", {}),
        "context": _json_env("LOKI_CONTEXT", {}),
        "client_name": os.getenv("LOKI_CLIENT_NAME") or None,
        "ready_check": os.getenv("LOKI_READY_CHECK", "").strip().lower() in _TRUE_VALUES,
    }
    for field_name, env_name in (
        ("timeout", "LOKI_TIMEOUT"),
        ("level", "LOKI_LEVEL"),
        ("batch_size", "LOKI_BATCH_SIZE"),
    ):
        raw = os.getenv(env_name)
        if raw:
            values[field_name] = raw

    settings = Settings(**values)

    logger.info(
        f"Shipper configured: entrypoint={settings.entrypoint}, "
        f"auth={'basic' if settings.basic_auth else '<none>'}, "
        f"labels={settings.labels}, level={settings.level.name}, "
        f"timeout={settings.timeout}s, batch_size={settings.batch_size}"
    )

    return settings
