"""
Component-colored layer images.

Each component gets a pseudo-random RGB color; an optional crosshair marks a
board coordinate to help calibrate the origin and dpi.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from connected_components import LayerComponents
from net_matching import PixelTransform
from xorwow import Xorwow

logger = logging.getLogger(__name__)


def make_palette(rng: Xorwow, count: int) -> np.ndarray:
    """Draw one RGB triple per component: bits 16-23, 8-15 and 0-7 of a draw."""
    palette = np.zeros((count, 3), dtype=np.uint8)
    for i in range(count):
        x = rng.next()
        palette[i, 0] = (x >> 16) & 255
        palette[i, 1] = (x >> 8) & 255
        palette[i, 2] = x & 255
    return palette


def colorize_components(layer: LayerComponents, palette: np.ndarray) -> np.ndarray:
    """RGB image (height, width, 3) with each component painted in its palette color."""
    height, width = layer.shape
    img = np.zeros((height * width, 3), dtype=np.uint8)
    for icom, com in enumerate(layer.components):
        img[com] = palette[icom]
    return img.reshape(height, width, 3)


def draw_crosshair(img: np.ndarray, px: int, py: int) -> None:
    """Invert the red channel along row py and column px, in place."""
    img[py, :, 0] ^= 255
    img[:, px, 0] ^= 255


def mark_point(img: np.ndarray, transform: PixelTransform,
               mark: Optional[Tuple[float, float]]) -> bool:
    """
    Draw a crosshair at a board coordinate if it falls on the image.

    Returns:
        True if the crosshair was drawn
    """
    if mark is None:
        return False
    px, py = transform.to_pixel(mark[0], mark[1])
    if not transform.in_bounds(px, py):
        logger.info("Not marking, ix = %d, iy = %d", px, py)
        return False
    logger.info("Marking ix = %d, iy = %d", px, py)
    draw_crosshair(img, px, py)
    return True
