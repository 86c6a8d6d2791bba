"""Runtime configuration for gator."""

import os
import re
from dataclasses import dataclass
from datetime import timedelta

DEFAULT_DB_PATH = "gator.db"
DEFAULT_USER_AGENT = "gator"
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


class ConfigError(Exception):
    """Raised when configuration or a startup argument is invalid."""


@dataclass(frozen=True)
class Config:
    """Settings resolved once at startup and passed to each component."""

    db_path: str = DEFAULT_DB_PATH
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout: float | None = DEFAULT_FETCH_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "Config":
        """Build a Config from GATOR_* environment variables.

        Raises:
            ConfigError: If a variable holds a value of the wrong shape.
        """
        env = os.environ if environ is None else environ

        raw_timeout = env.get("GATOR_FETCH_TIMEOUT", "")
        fetch_timeout: float | None = DEFAULT_FETCH_TIMEOUT
        if raw_timeout:
            try:
                fetch_timeout = float(raw_timeout)
            except ValueError:
                raise ConfigError(
                    f"GATOR_FETCH_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                )
            if fetch_timeout < 0:
                raise ConfigError("GATOR_FETCH_TIMEOUT must not be negative")
            if fetch_timeout == 0:
                fetch_timeout = None

        log_level = env.get("GATOR_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"GATOR_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        return cls(
            db_path=env.get("GATOR_DB_PATH", DEFAULT_DB_PATH),
            user_agent=env.get("GATOR_USER_AGENT", DEFAULT_USER_AGENT),
            fetch_timeout=fetch_timeout,
            log_level=log_level,
        )


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``30s``, ``1m`` or ``1h30m``.

    Accepts an optional sign followed by one or more number+unit pairs, with
    units ns, us, ms, s, m and h. A bare ``0`` is also accepted.

    Raises:
        ConfigError: If the string is not a valid duration.
    """
    original = text
    text = text.strip()
    if not text:
        raise ConfigError("invalid duration: empty string")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    pos = 0
    seconds = 0.0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ConfigError(f"invalid duration: {original!r}")
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0:
        raise ConfigError(f"invalid duration: {original!r}")
    return timedelta(seconds=sign * seconds)
