from dataclasses import dataclass
from typing import Tuple
import numpy as np

# (width, height) in pixels
Dimensions = Tuple[int, int]

# Integer pixel box (x0, y0, x1, y1), end-exclusive
PixelBox = Tuple[int, int, int, int]

# uint8 RGBA, shape (h, w, 4)
ImageBuffer = np.ndarray

# 2x3 forward affine (x' = a*x + b*y + c, y' = d*x + e*y + f)
AffineMatrix = np.ndarray

MIME_JPEG = "image/jpeg"
MIME_PNG = "image/png"
MIME_WEBP = "image/webp"

SUPPORTED_OUTPUT_MIME_TYPES = (MIME_JPEG, MIME_PNG, MIME_WEBP)


@dataclass(frozen=True)
class AppConfig:
    """
    Static application configuration.
    """

    max_upload_bytes: int
    display_max_size: Dimensions
    surface_backend: str
    max_surface_side: int
    zoom_step: float
    touch_zoom_step: float
    rotation_step: float
    upload_dir: str
