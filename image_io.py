"""
Bitmap reading and RGB image writing through Pillow.
"""

import numpy as np
from PIL import Image

from mutcap_exceptions import InputFileError, OutputFileError


def load_bitmap(path: str) -> np.ndarray:
    """
    Load a layer bitmap as a boolean presence grid.

    The image is converted to 8-bit gray; any nonzero pixel is copper.

    Args:
        path: Image file (PNG, BMP, TIFF, ...)

    Returns:
        (height, width) bool array
    """
    try:
        with Image.open(path) as img:
            gray = np.asarray(img.convert('L'))
    except (OSError, ValueError) as e:
        raise InputFileError(f"Cannot read bitmap {path}: {e}") from e
    return gray > 0


def save_rgb_image(path: str, rgb: np.ndarray) -> None:
    """Write a (height, width, 3) uint8 array as an RGB image."""
    try:
        Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).save(path)
    except (OSError, ValueError) as e:
        raise OutputFileError(f"Cannot write image {path}: {e}") from e
