from __future__ import annotations
import numpy as np
import logging

def get_logger(name: str = "voxscan") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def ensure_unit_vectors(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    norms = np.linalg.norm(v, axis=-1, keepdims=True)
    norms = np.clip(norms, eps, None)
    return v / norms

def clamp(x: float, lo: float, hi: float) -> float:
    return min(max(x, lo), hi)

def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)

def lerp(a: float, b: float, t: float) -> float:
    """Unclamped linear interpolation ``a + (b - a) * t``."""
    return a + (b - a) * t
