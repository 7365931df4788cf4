from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import urlsplit

DEFAULT_ADDRESS = "http://localhost:4140"
DEFAULT_CONCURRENCY_LEVELS = "1,5,10,20,30"
DEFAULT_TIME_PER_LEVEL = "1s"
DEFAULT_CONNECT_TIMEOUT_S = 5.0
DEFAULT_REQUEST_TIMEOUT_S = 10.0

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigurationError(ValueError):
    """Raised when user supplied configuration cannot be used to run a sweep."""


@dataclass(frozen=True)
class ClientConfig:
    """Knobs for the outbound HTTP session shared by the workers of one level."""

    insecure: bool = False
    keep_alive: bool = True
    compress: bool = False
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S


@dataclass(frozen=True)
class SweepConfig:
    """Already validated input of a full concurrency sweep."""

    address: str
    levels: tuple[int, ...]
    time_per_level_s: float
    host: str | None = None
    debug: bool = False

    @property
    def whole_seconds(self) -> int:
        return int(self.time_per_level_s)


def parse_concurrency_levels(raw: str | Sequence[int]) -> tuple[int, ...]:
    """Parse ``"1,5,10"`` (or an int sequence) into positive concurrency levels."""
    if isinstance(raw, str):
        items = [item.strip() for item in raw.split(",")]
    else:
        items = list(raw)

    levels: list[int] = []
    for item in items:
        try:
            level = int(item)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"unknown concurrency level: {item!r}") from exc
        if level <= 0:
            raise ConfigurationError(f"concurrency level must be positive: {item!r}")
        levels.append(level)

    if not levels:
        raise ConfigurationError("at least one concurrency level is required")
    return tuple(levels)


def _finite(seconds: float, raw: str | float | int) -> float:
    if not math.isfinite(seconds):
        raise ConfigurationError(f"invalid duration: {raw!r}")
    return seconds


def parse_duration(raw: str | float | int) -> float:
    """Return seconds for a plain number or a duration string like ``1m30s``."""
    if isinstance(raw, (int, float)):
        return _finite(float(raw), raw)

    text = raw.strip()
    if not text:
        raise ConfigurationError("duration must not be empty")
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return _finite(seconds, raw)

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ConfigurationError(f"invalid duration: {raw!r}")
    return _finite(total, raw)


def validate_url(address: str) -> str:
    parts = urlsplit(address)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ConfigurationError(f"invalid URL: {address!r}")
    return address


def build_sweep_config(
    address: str,
    concurrency_levels: str | Sequence[int],
    time_per_level: str | float,
    host: str | None = None,
    debug: bool = False,
) -> SweepConfig:
    duration = parse_duration(time_per_level)
    if duration < 1.0:
        raise ConfigurationError("timePerLevel cannot be less than 1 second.")

    return SweepConfig(
        address=validate_url(address),
        levels=parse_concurrency_levels(concurrency_levels),
        time_per_level_s=duration,
        host=host or None,
        debug=debug,
    )


__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "SweepConfig",
    "build_sweep_config",
    "parse_concurrency_levels",
    "parse_duration",
    "validate_url",
]
