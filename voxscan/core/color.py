from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import numpy as np

from .utils import clamp01

# BT.709 luma weights, applied to linear channels
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722


def srgb_to_linear(c: np.ndarray | float) -> np.ndarray | float:
    """Piecewise sRGB decode (display -> linear)."""
    arr = np.asarray(c, dtype=np.float64)
    out = np.where(arr <= 0.04045, arr / 12.92, np.power((np.clip(arr, 0.0, None) + 0.055) / 1.055, 2.4))
    if np.ndim(c) == 0:
        return float(out)
    return out


def linear_to_srgb(c: np.ndarray | float) -> np.ndarray | float:
    """Piecewise sRGB encode (linear -> display)."""
    arr = np.asarray(c, dtype=np.float64)
    out = np.where(arr <= 0.0031308, arr * 12.92, 1.055 * np.power(np.clip(arr, 0.0, None), 1.0 / 2.4) - 0.055)
    if np.ndim(c) == 0:
        return float(out)
    return out


def luminance(r: float, g: float, b: float) -> float:
    return LUMA_R * r + LUMA_G * g + LUMA_B * b


@dataclass(frozen=True)
class Color:
    """RGBA color in display (gamma) space. Alpha is never gamma-converted."""

    r: float
    g: float
    b: float
    a: float = 1.0

    @property
    def linear(self) -> "Color":
        r, g, b = srgb_to_linear(np.array([self.r, self.g, self.b]))
        return Color(float(r), float(g), float(b), self.a)

    @property
    def gamma(self) -> "Color":
        r, g, b = linear_to_srgb(np.array([self.r, self.g, self.b]))
        return Color(float(r), float(g), float(b), self.a)

    def scaled(self, factor: float) -> "Color":
        return Color(self.r * factor, self.g * factor, self.b * factor, self.a)

    def clamped(self) -> "Color":
        return Color(clamp01(self.r), clamp01(self.g), clamp01(self.b), clamp01(self.a))

    def luminance(self) -> float:
        """Luminance of this color's channels taken as they are (call on ``.linear``)."""
        return luminance(self.r, self.g, self.b)

    def to_rgb8(self) -> Tuple[int, int, int]:
        c = self.clamped()
        return (int(round(c.r * 255.0)), int(round(c.g * 255.0)), int(round(c.b * 255.0)))

    @staticmethod
    def from_rgb8(rgb: Tuple[int, int, int], a: float = 1.0) -> "Color":
        return Color(rgb[0] / 255.0, rgb[1] / 255.0, rgb[2] / 255.0, a)

    @staticmethod
    def from_array(values: np.ndarray) -> "Color":
        v = np.asarray(values, dtype=np.float64).reshape(-1)
        if v.shape[0] == 3:
            return Color(float(v[0]), float(v[1]), float(v[2]))
        if v.shape[0] == 4:
            return Color(float(v[0]), float(v[1]), float(v[2]), float(v[3]))
        raise ValueError(f"Color expects 3 or 4 channels, got {v.shape[0]}")
