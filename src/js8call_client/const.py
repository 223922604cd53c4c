import logging
import os

from js8call_client import __version__

__all__ = [
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_RECONNECT_DELAY",
    "DEFAULT_REQUEST_TIMEOUT",
    "JS8CALL_CONNECT_TIMEOUT",
    "JS8CALL_DEBUG",
    "JS8CALL_HOST",
    "JS8CALL_LOG_FORMAT",
    "JS8CALL_LOG_HUMAN_OUTPUT",
    "JS8CALL_LOG_JSON_FILE",
    "JS8CALL_METRICS_PORT",
    "JS8CALL_PORT",
    "JS8CALL_RECONNECT_DELAY",
    "JS8CALL_REQUEST_TIMEOUT",
    "JS8CALL_VERSION",
    "LOG_FORMATTER",
    "YES_ANSWER",
    "env_float",
    "env_int",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", "on")

LOG_FORMATTER = logging.Formatter(
    "%(asctime)s.%(msecs)d %(levelname)s [%(module)s:%(lineno)d] > %(message)s",
    "%m/%d/%y %H:%M:%S",
)
JS8CALL_VERSION: str = __version__

# JS8Call's TCP API listens on 2442 unless changed in its settings.
DEFAULT_HOST: str = "localhost"
DEFAULT_PORT: int = 2442
DEFAULT_CONNECT_TIMEOUT: float = 5.0
DEFAULT_REQUEST_TIMEOUT: float = 5.0
DEFAULT_RECONNECT_DELAY: float = 5.0


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to default when unset or malformed."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    """Read a float environment variable, falling back to default when unset or malformed."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


JS8CALL_HOST: str = os.environ.get("JS8CALL_HOST", DEFAULT_HOST) or DEFAULT_HOST
JS8CALL_PORT: int = env_int("JS8CALL_PORT", DEFAULT_PORT)
JS8CALL_CONNECT_TIMEOUT: float = env_float("JS8CALL_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)
JS8CALL_REQUEST_TIMEOUT: float = env_float("JS8CALL_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
JS8CALL_RECONNECT_DELAY: float = env_float("JS8CALL_RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY)
JS8CALL_METRICS_PORT: int = env_int("JS8CALL_METRICS_PORT", 0)

JS8CALL_DEBUG = os.environ.get("JS8CALL_DEBUG", "0").casefold() in YES_ANSWER
JS8CALL_LOG_FORMAT: str = os.environ.get("JS8CALL_LOG_FORMAT", "human")
JS8CALL_LOG_HUMAN_OUTPUT: str = os.environ.get("JS8CALL_LOG_HUMAN_OUTPUT", "stderr")
_json_file = os.environ.get("JS8CALL_LOG_JSON_FILE")
JS8CALL_LOG_JSON_FILE: str | None = _json_file if _json_file else None
