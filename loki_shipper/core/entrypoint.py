"""Loki entrypoint URL helpers."""

__all__ = ["normalize_entrypoint", "push_url", "ready_url"]

PUSH_PATH = "/loki/api/v1/push"
READY_PATH = "/ready"


def normalize_entrypoint(entrypoint: str) -> str:
    """Strip trailing path separators so paths can be appended verbatim.

    Args:
        entrypoint: Configured base URL, e.g. ``http://loki:3100/``.

    Returns:
        The URL without trailing ``/``.
    """
    return entrypoint.rstrip("/")


def push_url(entrypoint: str) -> str:
    """Return the push API URL for an entrypoint."""
    return f"{normalize_entrypoint(entrypoint)}{PUSH_PATH}"


def ready_url(entrypoint: str) -> str:
    """Return the readiness endpoint URL for an entrypoint."""
    return f"{normalize_entrypoint(entrypoint)}{READY_PATH}"
