"""Programmatic entry points."""

from .run import ScanRunResult, scan_from_config

__all__ = ["ScanRunResult", "scan_from_config"]
