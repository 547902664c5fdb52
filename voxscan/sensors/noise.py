from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.color import linear_to_srgb, srgb_to_linear


@dataclass
class ExposureDrift:
    """Simulated camera auto-exposure: a periodic gain plus pixel noise.

    The gain ``1 + gain_amplitude * sin(2 pi tick / gain_period_ticks)`` is
    applied in linear space; Gaussian noise with ``pixel_sigma`` is added in
    display space afterwards.
    """

    gain_amplitude: float = 0.0
    gain_period_ticks: float = 60.0
    pixel_sigma: float = 0.0

    def __post_init__(self) -> None:
        if not (0.0 <= self.gain_amplitude < 1.0):
            raise ValueError("gain_amplitude must be in [0, 1).")
        if self.gain_period_ticks <= 0:
            raise ValueError("gain_period_ticks must be positive.")
        self.pixel_sigma = float(max(0.0, self.pixel_sigma))

    def gain(self, tick: int) -> float:
        if self.gain_amplitude == 0.0:
            return 1.0
        return 1.0 + self.gain_amplitude * float(np.sin(2.0 * np.pi * tick / self.gain_period_ticks))

    def apply(self, display_rgb: np.ndarray, tick: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        gain = self.gain(tick)
        out = display_rgb
        if gain != 1.0:
            out = linear_to_srgb(srgb_to_linear(out) * gain)
        if self.pixel_sigma > 0.0:
            if rng is None:
                rng = np.random.default_rng()
            out = out + rng.normal(scale=self.pixel_sigma, size=out.shape)
        return np.clip(out, 0.0, 1.0)
