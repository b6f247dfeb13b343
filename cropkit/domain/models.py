from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Tuple
from cropkit.domain.types import (
    Dimensions,
    ImageBuffer,
    MIME_JPEG,
    SUPPORTED_OUTPUT_MIME_TYPES,
)


class CoordinateSpace(StrEnum):
    DISPLAY = "display"
    NATURAL = "natural"
    SURFACE = "surface"


class RotationMode(StrEnum):
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"


@dataclass(frozen=True)
class Viewport:
    """
    On-screen rendered size of the source image.
    """

    display_width: float
    display_height: float

    @property
    def size(self) -> Tuple[float, float]:
        return self.display_width, self.display_height

    @property
    def is_empty(self) -> bool:
        return self.display_width <= 0 or self.display_height <= 0


@dataclass(frozen=True)
class CropRegion:
    """
    Rectangle selected for extraction, tagged with its coordinate space.
    """

    x: float
    y: float
    width: float
    height: float
    space: CoordinateSpace = CoordinateSpace.DISPLAY

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def moved_to(self, x: float, y: float) -> "CropRegion":
        return replace(self, x=x, y=y)

    def with_space(self, space: CoordinateSpace) -> "CropRegion":
        return replace(self, space=space)


@dataclass(frozen=True)
class Transform:
    zoom: float = 1.0
    rotation_degrees: float = 0.0


@dataclass(frozen=True)
class OutputSpec:
    """
    Per-session output configuration (size, format, zoom bounds).
    """

    target_width: int = 400
    target_height: int = 300
    aspect_ratio: float = 0.0
    mime_type: str = MIME_JPEG
    quality: float = 0.8
    min_zoom: float = 1.0
    max_zoom: float = 3.0
    background: str = "#000000"

    def __post_init__(self) -> None:
        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError(f"Invalid target size {self.target_width}x{self.target_height}")
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"Quality must be within [0, 1], got {self.quality}")
        if self.mime_type not in SUPPORTED_OUTPUT_MIME_TYPES:
            raise ValueError(f"Unsupported output type: {self.mime_type}")
        if self.min_zoom <= 0 or self.min_zoom > self.max_zoom:
            raise ValueError(f"Invalid zoom bounds [{self.min_zoom}, {self.max_zoom}]")
        if self.aspect_ratio <= 0:
            object.__setattr__(self, "aspect_ratio", self.target_width / self.target_height)

    @property
    def target_size(self) -> Dimensions:
        return self.target_width, self.target_height


@dataclass(frozen=True, eq=False)
class SourceImage:
    """
    Decoded bitmap handle. `pixels` is uint8 RGBA, shape (h, w, 4).
    """

    pixels: ImageBuffer
    natural_width: int
    natural_height: int
    mime_type: str = ""

    @property
    def natural_size(self) -> Dimensions:
        return self.natural_width, self.natural_height
