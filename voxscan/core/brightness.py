from __future__ import annotations

from .color import luminance
from ..sensors.base import ImageFrame


class RegionBrightnessEstimator:
    """Mean perceptual luminance of a square pixel neighborhood.

    The window has side ``roi_size`` with offsets ``-(roi_size // 2)`` through
    ``roi_size - roi_size // 2 - 1`` on both axes, so an even size leans
    towards lower indices. Pixels outside the image are skipped; luminance
    uses BT.709 weights on linear channels.
    """

    def __init__(self, roi_size: int = 3) -> None:
        if roi_size <= 0:
            raise ValueError("roi_size must be positive")
        self.roi_size = int(roi_size)

    @property
    def offsets(self) -> range:
        half = self.roi_size // 2
        return range(-half, self.roi_size - half)

    def estimate(self, image: ImageFrame, center_x: int, center_y: int) -> float:
        total = 0.0
        count = 0
        for dy in self.offsets:
            y = center_y + dy
            if y < 0 or y >= image.height:
                continue
            for dx in self.offsets:
                x = center_x + dx
                if x < 0 or x >= image.width:
                    continue
                px = image.get_pixel(x, y).linear
                total += luminance(px.r, px.g, px.b)
                count += 1
        return total / count if count > 0 else 0.0
