from dataclasses import dataclass
from typing import Optional
from cropkit.domain.errors import InvalidCropRegion
from cropkit.domain.interfaces import ISurfaceBackend
from cropkit.domain.models import OutputSpec, SourceImage
from cropkit.features.geometry.logic import (
    compose_draw_matrix,
    display_to_natural,
    region_to_pixel_box,
    safe_canvas_size,
    to_surface_frame,
)
from cropkit.features.transform.models import TransformSnapshot
from cropkit.infrastructure.surfaces.factory import surface_factory
from cropkit.kernel.image.encoding import extension_for, to_data_uri
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RasterOutput:
    """
    Encoded output raster.
    """

    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def extension(self) -> str:
        return extension_for(self.mime_type)

    def to_data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


class Rasterizer:
    """
    Rotate-safe draw -> crop extraction -> resize -> encode.
    """

    def __init__(self, backend: Optional[ISurfaceBackend] = None):
        self.backend = backend or surface_factory.get_backend(APP_CONFIG.surface_backend)

    def rasterize(
        self,
        source: SourceImage,
        snapshot: TransformSnapshot,
        output_spec: OutputSpec,
    ) -> RasterOutput:
        """
        Raises SurfaceUnavailable or InvalidCropRegion; never retries.
        """
        nat_w, nat_h = source.natural_size
        degrees = snapshot.transform.rotation_degrees

        # 1. Safe area
        safe = safe_canvas_size(nat_w, nat_h)

        # 2. Draw rotated about the surface center
        surface = self.backend.create_surface(safe, safe)
        surface.draw_image(source.pixels, compose_draw_matrix(safe, (nat_w, nat_h), degrees))

        # 3. Display -> natural -> surface frame
        natural = display_to_natural(snapshot.effective_region(), snapshot.viewport, (nat_w, nat_h))
        framed = to_surface_frame(natural, safe, (nat_w, nat_h))
        box = region_to_pixel_box(framed, (safe, safe))
        x0, y0, x1, y1 = box
        if x1 <= x0 or y1 <= y0:
            logger.error(f"Crop region degenerated after conversion: {natural} -> {box}")
            raise InvalidCropRegion(f"Crop region {natural} is empty at natural resolution")

        # 4. Extract + resample
        out = surface.extract_region(box, output_spec.target_size)

        # 5. Encode
        data = out.encode(output_spec.mime_type, output_spec.quality, output_spec.background)

        logger.info(
            f"Rasterized {nat_w}x{nat_h} @ {degrees:.1f}deg, box {box} -> "
            f"{output_spec.target_width}x{output_spec.target_height} {output_spec.mime_type} "
            f"({len(data)} bytes, backend={self.backend.name})"
        )
        return RasterOutput(
            data=data,
            mime_type=output_spec.mime_type,
            width=output_spec.target_width,
            height=output_spec.target_height,
        )
