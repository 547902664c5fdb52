"""Configuration loading utilities for voxscan."""

from .schema import (
    ScannerConfig,
    ScenarioConfig,
    load_config,
)

__all__ = ["ScannerConfig", "ScenarioConfig", "load_config"]
