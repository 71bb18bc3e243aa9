"""
Environment-driven settings.

Values are resolved per call (not at import time) so a long-lived agent picks
up changes and tests can monkeypatch the environment.
"""
import logging
import os

DEFAULT_LOG_LEVEL = "WARNING"

_logger = None


def _get_logger():
    global _logger
    if _logger is None:
        _logger = logging.getLogger("cygpath.config")
    return _logger


def get_timeout() -> float | None:
    """
    Bound, in seconds, on the cygpath and REG QUERY subprocesses.

    Reads CYGPATH_TIMEOUT. Unset, empty, zero or negative means no bound,
    which keeps launches blocking until the lookup tool exits. Garbage is
    reported and treated as unset.
    """
    raw = os.environ.get("CYGPATH_TIMEOUT", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        _get_logger().warning(f"Ignoring invalid CYGPATH_TIMEOUT='{raw}'")
        return None
    return value if value > 0 else None


def get_log_level() -> int:
    """Logging level from CYGPATH_LOG_LEVEL, falling back to WARNING."""
    raw = os.environ.get("CYGPATH_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(raw)
    if isinstance(level, int):
        return level
    _get_logger().warning(f"Unknown CYGPATH_LOG_LEVEL='{raw}', defaulting to {DEFAULT_LOG_LEVEL}")
    return logging.WARNING
