"""
Net to component matching.

Maps each net's flash points from board coordinates (mm, origin at the
bottom-left, Y up) to raster pixels (row 0 at the top) and names the copper
component found under each point.

    X = delta * (px + 0.5) + X0
    Y = delta * (H - py - 0.5) + Y0

so

    px = floor((X - X0) / delta - 0.5)
    py = floor(H - (Y - Y0) / delta - 0.5)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from mutcap_constants import MM_PER_INCH
from net_index import NetIndex

logger = logging.getLogger(__name__)

# Absorbs rounding when a point sits exactly on a pixel center
PIXEL_EPSILON = 1e-9


@dataclass(frozen=True)
class PixelTransform:
    """Affine map between board millimeters and raster pixels."""
    delta: float  # mm per pixel
    x0: float
    y0: float
    height: int
    width: int

    @classmethod
    def from_dpi(cls, dpi: float, origin: Tuple[float, float], height: int, width: int) -> 'PixelTransform':
        return cls(delta=MM_PER_INCH / dpi, x0=origin[0], y0=origin[1], height=height, width=width)

    def to_pixel(self, x: float, y: float) -> Tuple[int, int]:
        """Pixel (px, py) containing board point (x, y); may be out of bounds."""
        px = math.floor((x - self.x0) / self.delta - 0.5 + PIXEL_EPSILON)
        py = math.floor(self.height - (y - self.y0) / self.delta - 0.5 + PIXEL_EPSILON)
        return px, py

    def pixel_center(self, px: int, py: int) -> Tuple[float, float]:
        """Board coordinates of the center of pixel (px, py)."""
        return (self.delta * (px + 0.5) + self.x0,
                self.delta * (self.height - py - 0.5) + self.y0)

    def in_bounds(self, px: int, py: int) -> bool:
        return 0 <= px < self.width and 0 <= py < self.height


@dataclass(frozen=True)
class PointMatch:
    """Where one flash point landed."""
    x: float
    y: float
    px: int
    py: int
    component_id: Optional[int]  # None when out of bounds, 0 when on bare board

    @property
    def out_of_bounds(self) -> bool:
        return self.component_id is None

    @property
    def side(self) -> str:
        """'negative' or 'positive' for out-of-bounds points."""
        return 'negative' if self.px < 0 or self.py < 0 else 'positive'


@dataclass(frozen=True)
class ClaimConflict:
    """A component claimed by two different nets; the later claim is kept."""
    component_id: int
    previous: str
    current: str


@dataclass
class LayerMatch:
    """Result of matching one layer's nets to its components."""
    layer: int
    component_names: List[Optional[str]]
    point_matches: Dict[str, List[PointMatch]] = field(default_factory=dict)
    out_of_bounds: int = 0
    conflicts: List[ClaimConflict] = field(default_factory=list)

    @property
    def named_count(self) -> int:
        return sum(1 for n in self.component_names if n is not None)


def match_layer_nets(net_index: NetIndex, id_grid: np.ndarray, num_components: int,
                     transform: PixelTransform, layer: int = 0) -> LayerMatch:
    """
    Name the components of one layer from its nets' flash points.

    Nets are visited in sorted name order and their points in file order.

    Args:
        net_index: Net name -> flash points (mm) for this layer
        id_grid: 2-D component id grid of this layer (0 = no copper)
        num_components: Number of components on this layer
        transform: Board to pixel transform
        layer: Layer index, for reporting

    Returns:
        LayerMatch with per-component net names, per-point results,
        the out-of-bounds count and any conflicting claims
    """
    result = LayerMatch(layer=layer, component_names=[None] * num_components)

    for name in sorted(net_index):
        matches = []
        for x, y in net_index[name]:
            px, py = transform.to_pixel(x, y)
            if not transform.in_bounds(px, py):
                result.out_of_bounds += 1
                matches.append(PointMatch(x, y, px, py, None))
                continue
            icom = int(id_grid[py, px])
            matches.append(PointMatch(x, y, px, py, icom))
            if icom > 0:
                previous = result.component_names[icom - 1]
                if previous is not None and previous != name:
                    logger.warning("Layer %d: component %d claimed by %s and %s; keeping %s",
                                   layer, icom, previous, name, name)
                    result.conflicts.append(ClaimConflict(icom, previous, name))
                result.component_names[icom - 1] = name
        result.point_matches[name] = matches

    if result.out_of_bounds > 0:
        logger.warning("Layer %d: %d flash points could not be matched (out of bounds); "
                       "check origin and dpi", layer, result.out_of_bounds)
    return result
