from dataclasses import dataclass
from typing import Optional, Tuple
from cropkit.domain.errors import ModelFrozenError
from cropkit.domain.models import CropRegion, RotationMode, Transform, Viewport
from cropkit.features.geometry.logic import (
    centered_region,
    clamp_region,
    clamp_zoom,
    fit_region,
    normalize_rotation,
    rescale_region,
    zoom_region,
)
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransformSnapshot:
    """
    Immutable rasterizer input, taken once at apply time.
    """

    viewport: Viewport
    region: CropRegion
    transform: Transform
    rotation_mode: RotationMode = RotationMode.CONTINUOUS
    min_zoom: float = 1.0
    max_zoom: float = 3.0

    def effective_region(self) -> CropRegion:
        """Display-space area actually selected at the current zoom, kept inside the viewport."""
        return fit_region(zoom_region(self.region, self.transform.zoom), self.viewport)


class TransformModel:
    """
    Zoom, rotation and crop region for one editing session.
    Every mutation re-clamps, so the model never holds an out-of-range state.
    """

    def __init__(
        self,
        viewport: Viewport,
        region: CropRegion,
        transform: Transform = Transform(),
        rotation_mode: RotationMode = RotationMode.CONTINUOUS,
        min_zoom: float = 1.0,
        max_zoom: float = 3.0,
        output_aspect: float = 0.0,
    ):
        self.rotation_mode = rotation_mode
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.output_aspect = output_aspect
        self._frozen = False

        self._viewport = viewport
        self._region = clamp_region(region, viewport)
        self._transform = Transform(
            zoom=clamp_zoom(transform.zoom, min_zoom, max_zoom),
            rotation_degrees=normalize_rotation(transform.rotation_degrees, rotation_mode),
        )

    @classmethod
    def init_centered(
        cls,
        viewport: Viewport,
        output_aspect: float,
        rotation_mode: RotationMode = RotationMode.CONTINUOUS,
        min_zoom: float = 1.0,
        max_zoom: float = 3.0,
    ) -> "TransformModel":
        """
        Maximal centered region of the output aspect, zoom 1, no rotation.
        """
        return cls(
            viewport,
            centered_region(viewport, output_aspect),
            Transform(zoom=1.0, rotation_degrees=0.0),
            rotation_mode=rotation_mode,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            output_aspect=output_aspect,
        )

    @classmethod
    def from_snapshot(cls, snapshot: TransformSnapshot, output_aspect: float = 0.0) -> "TransformModel":
        """
        Fresh, editable model seeded from a snapshot.
        """
        return cls(
            snapshot.viewport,
            snapshot.region,
            snapshot.transform,
            rotation_mode=snapshot.rotation_mode,
            min_zoom=snapshot.min_zoom,
            max_zoom=snapshot.max_zoom,
            output_aspect=output_aspect,
        )

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def region(self) -> CropRegion:
        return self._region

    @property
    def transform(self) -> Transform:
        return self._transform

    @property
    def zoom(self) -> float:
        return self._transform.zoom

    @property
    def rotation(self) -> float:
        return self._transform.rotation_degrees

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise ModelFrozenError("TransformModel was snapshotted and is read-only")

    def set_zoom(self, zoom: float) -> float:
        self._ensure_mutable()
        self._transform = Transform(clamp_zoom(zoom, self.min_zoom, self.max_zoom), self._transform.rotation_degrees)
        return self._transform.zoom

    def zoom_by(self, step: float) -> float:
        return self.set_zoom(self._transform.zoom + step)

    def set_rotation(self, degrees: float) -> float:
        self._ensure_mutable()
        self._transform = Transform(self._transform.zoom, normalize_rotation(degrees, self.rotation_mode))
        return self._transform.rotation_degrees

    def rotate_by(self, step: float) -> float:
        return self.set_rotation(self._transform.rotation_degrees + step)

    def move_by(self, dx: float, dy: float, origin: Optional[Tuple[float, float]] = None) -> CropRegion:
        """
        Shifts the region by (dx, dy), relative to `origin` when given.
        """
        base_x, base_y = origin if origin is not None else (self._region.x, self._region.y)
        return self.move_to(base_x + dx, base_y + dy)

    def move_to(self, x: float, y: float) -> CropRegion:
        self._ensure_mutable()
        self._region = clamp_region(self._region.moved_to(x, y), self._viewport)
        return self._region

    def set_viewport(self, viewport: Viewport) -> CropRegion:
        """
        Layout change: rescale the region into the new viewport.
        """
        self._ensure_mutable()
        rescaled = rescale_region(self._region, self._viewport, viewport)
        self._viewport = viewport
        self._region = clamp_region(rescaled, viewport)
        logger.debug(f"Viewport -> {viewport.display_width}x{viewport.display_height}, region {self._region}")
        return self._region

    def reset(self) -> None:
        self._ensure_mutable()
        self._region = clamp_region(centered_region(self._viewport, self.output_aspect), self._viewport)
        self._transform = Transform(clamp_zoom(1.0, self.min_zoom, self.max_zoom), 0.0)

    def snapshot(self) -> TransformSnapshot:
        """
        Immutable copy for the rasterizer. Freezes this model; a second call raises.
        """
        self._ensure_mutable()
        self._frozen = True
        return TransformSnapshot(
            viewport=self._viewport,
            region=self._region,
            transform=self._transform,
            rotation_mode=self.rotation_mode,
            min_zoom=self.min_zoom,
            max_zoom=self.max_zoom,
        )
