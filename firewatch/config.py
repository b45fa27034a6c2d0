"""
Engine configuration.

Defaults are tuned for city-scale viewing. Values can be overridden from the
environment (or a .env file) with FIREWATCH_* variables; API keys for the
external services are read from the environment only.
"""

import math
import os
from dataclasses import dataclass, field, fields
from typing import Optional

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when engine configuration is invalid."""


# Clustering threshold: base_unit degrees at reference_zoom, halving per zoom level
DEFAULT_BASE_UNIT = 0.01
DEFAULT_REFERENCE_ZOOM = 8.0
DEFAULT_MIN_ZOOM = 0.0
DEFAULT_MAX_ZOOM = 22.0

# Geofence
DEFAULT_CIRCLE_RADIUS_KM = 0.2
DEFAULT_CIRCLE_STEPS = 64
MIN_CIRCLE_STEPS = 32

# Scheduling
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_DEBOUNCE_S = 0.3

# Enrichment
NEWS_LIMIT = 3


@dataclass
class EngineConfig:
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    debounce_s: float = DEFAULT_DEBOUNCE_S
    base_unit: float = DEFAULT_BASE_UNIT
    reference_zoom: float = DEFAULT_REFERENCE_ZOOM
    min_zoom: float = DEFAULT_MIN_ZOOM
    max_zoom: float = DEFAULT_MAX_ZOOM
    circle_radius_km: float = DEFAULT_CIRCLE_RADIUS_KM
    circle_steps: int = DEFAULT_CIRCLE_STEPS
    overlap_threshold: float = 0.5
    news_limit: int = NEWS_LIMIT
    fallback_seed: Optional[int] = None
    mapbox_token: Optional[str] = field(default=None, repr=False)
    news_api_key: Optional[str] = field(default=None, repr=False)
    verbose: bool = False

    def validate(self) -> "EngineConfig":
        """Check value ranges, raising ConfigError on the first problem."""
        for name in ("poll_interval_s", "base_unit", "circle_radius_km"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive number, got {value!r}")
        if self.debounce_s < 0:
            raise ConfigError(f"debounce_s must not be negative, got {self.debounce_s!r}")
        if self.min_zoom > self.max_zoom:
            raise ConfigError(
                f"min_zoom ({self.min_zoom}) must not exceed max_zoom ({self.max_zoom})"
            )
        if self.circle_steps < MIN_CIRCLE_STEPS:
            raise ConfigError(
                f"circle_steps must be at least {MIN_CIRCLE_STEPS}, got {self.circle_steps}"
            )
        if not 0 <= self.overlap_threshold < 1:
            raise ConfigError(
                f"overlap_threshold must be in [0, 1), got {self.overlap_threshold!r}"
            )
        if not 1 <= self.news_limit <= NEWS_LIMIT:
            raise ConfigError(f"news_limit must be between 1 and {NEWS_LIMIT}")
        return self


def _coerce(raw: str, target):
    if target is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if target is int:
        return int(raw)
    return float(raw)


def load_config(env_file: Optional[str] = None, **overrides) -> EngineConfig:
    """
    Build an EngineConfig from defaults, the environment and keyword overrides.

    Args:
        env_file: Optional path to a .env file (defaults to dotenv's search)
        **overrides: Explicit values that win over the environment

    Returns:
        Validated EngineConfig

    Raises:
        ConfigError: If a value cannot be parsed or is out of range
    """
    load_dotenv(env_file)

    values = {}
    numeric = {
        "poll_interval_s": float,
        "debounce_s": float,
        "base_unit": float,
        "reference_zoom": float,
        "min_zoom": float,
        "max_zoom": float,
        "circle_radius_km": float,
        "circle_steps": int,
        "overlap_threshold": float,
        "news_limit": int,
        "fallback_seed": int,
        "verbose": bool,
    }
    for name, target in numeric.items():
        raw = os.getenv(f"FIREWATCH_{name.upper()}")
        if raw is None or raw == "":
            continue
        try:
            values[name] = _coerce(raw, target)
        except ValueError as e:
            raise ConfigError(f"FIREWATCH_{name.upper()}: {e}") from e

    values["mapbox_token"] = os.getenv("MAPBOX_ACCESS_TOKEN") or None
    values["news_api_key"] = os.getenv("NEWS_API_KEY") or None

    known = {f.name for f in fields(EngineConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")
    values.update({k: v for k, v in overrides.items() if v is not None})

    return EngineConfig(**values).validate()
