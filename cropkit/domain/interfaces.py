from typing import Protocol
from cropkit.domain.types import AffineMatrix, Dimensions, ImageBuffer, PixelBox


class IDrawingSurface(Protocol):
    """
    Minimal raster surface used by the rasterizer.
    """

    @property
    def size(self) -> Dimensions: ...

    def draw_image(self, pixels: ImageBuffer, matrix: AffineMatrix) -> None: ...

    def extract_region(self, box: PixelBox, target_size: Dimensions) -> "IDrawingSurface": ...

    def encode(self, mime_type: str, quality: float, background: str) -> bytes: ...

    def to_array(self) -> ImageBuffer: ...


class ISurfaceBackend(Protocol):
    """
    Allocates drawing surfaces. Raises SurfaceUnavailable on failure.
    """

    name: str

    def create_surface(self, width: int, height: int) -> IDrawingSurface: ...


class IUploadPipeline(Protocol):
    """
    Persists encoded output and returns its hosted URL. Raises UploadError.
    """

    def upload(self, data: bytes, mime_type: str) -> str: ...
