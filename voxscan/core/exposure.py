from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Tuple

from .color import Color
from .utils import clamp, lerp

# Measured brightness floor; keeps the ratio finite on near-black samples
MIN_MEASURED_BRIGHTNESS = 0.001


@dataclass
class CorrectionState:
    """The single smoothed correction factor shared by every placement."""

    factor: float = 1.0
    updates: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


def raw_correction_factor(measured: float, target: float, min_correction: float, max_correction: float) -> float:
    return clamp(target / max(measured, MIN_MEASURED_BRIGHTNESS), min_correction, max_correction)


def correct_exposure(
    color: Color,
    measured: float,
    target: float,
    min_correction: float,
    max_correction: float,
    smoothing: float,
    state: float,
) -> Tuple[Color, float]:
    """Exposure-correct one sampled color.

    Returns the corrected display-space color and the new filter state
    ``lerp(state, raw, smoothing)``, clamped to the correction bounds. RGB is
    scaled in linear space and converted back; all channels end in [0, 1].
    """
    raw = raw_correction_factor(measured, target, min_correction, max_correction)
    new_state = clamp(lerp(state, raw, smoothing), min_correction, max_correction)
    corrected = color.linear.scaled(new_state).gamma.clamped()
    return corrected, new_state


class ExposureCorrector:
    """Binds the correction parameters to a shared :class:`CorrectionState`."""

    def __init__(
        self,
        target_brightness: float = 0.8,
        min_correction: float = 0.8,
        max_correction: float = 1.5,
        smoothing: float = 0.5,
        state: CorrectionState | None = None,
    ) -> None:
        if not (0.0 <= target_brightness <= 1.0):
            raise ValueError("target_brightness must be in [0, 1]")
        if not (0.0 <= smoothing <= 1.0):
            raise ValueError("smoothing must be in [0, 1]")
        if min_correction <= 0.0 or min_correction > max_correction:
            raise ValueError("need 0 < min_correction <= max_correction")
        self.target_brightness = float(target_brightness)
        self.min_correction = float(min_correction)
        self.max_correction = float(max_correction)
        self.smoothing = float(smoothing)
        self.state = state if state is not None else CorrectionState()

    @property
    def factor(self) -> float:
        return self.state.factor

    def correct(self, color: Color, measured_brightness: float) -> Color:
        with self.state.lock:
            corrected, self.state.factor = correct_exposure(
                color,
                measured_brightness,
                self.target_brightness,
                self.min_correction,
                self.max_correction,
                self.smoothing,
                self.state.factor,
            )
            self.state.updates += 1
        return corrected
