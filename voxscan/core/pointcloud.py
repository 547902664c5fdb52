from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np
from typing import Dict

@dataclass
class VoxelBatch:
    """Placed voxel centers with per-voxel attributes."""
    xyz: np.ndarray                       # (N, 3) cell centers
    attrs: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.xyz = np.asarray(self.xyz, dtype=np.float64).reshape(-1, 3)
        # Ensure attributes are 1D or 2D with matching length
        n = len(self.xyz)
        for k, v in list(self.attrs.items()):
            v = np.asarray(v)
            if v.ndim == 1 and len(v) != n:
                raise ValueError(f"Attribute '{k}' length {len(v)} != {n}")
            if v.ndim == 2 and v.shape[0] != n:
                raise ValueError(f"Attribute '{k}' first dim {v.shape[0]} != {n}")
            self.attrs[k] = v

    def __len__(self) -> int:
        return len(self.xyz)
