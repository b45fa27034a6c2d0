"""
firewatch

Clustering and geofencing engine for live wildfire incident reports.
"""

from .config import ConfigError, EngineConfig, load_config
from .engine import FireClusterEngine, ReconcileResult, StaticViewport

__all__ = [
    "ConfigError",
    "EngineConfig",
    "load_config",
    "FireClusterEngine",
    "ReconcileResult",
    "StaticViewport",
]
