import cv2
import numpy as np
from cropkit.domain.errors import InvalidCropRegion, SurfaceUnavailable
from cropkit.domain.types import AffineMatrix, Dimensions, ImageBuffer, PixelBox
from cropkit.features.geometry.logic import matrix_quarter_turns, snap, transform_bounds
from cropkit.kernel.image.encoding import encode_rgba
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)


def _source_over(dst: np.ndarray, src: np.ndarray) -> None:
    """
    Non-premultiplied source-over, in place.
    """
    a_s = src[..., 3:4].astype(np.float32) / 255.0
    a_d = dst[..., 3:4].astype(np.float32) / 255.0
    a_out = a_s + a_d * (1.0 - a_s)

    rgb = src[..., :3].astype(np.float32) * a_s + dst[..., :3].astype(np.float32) * a_d * (1.0 - a_s)
    rgb = np.divide(rgb, a_out, out=np.zeros_like(rgb), where=a_out > 0)

    dst[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    dst[..., 3:4] = np.clip(np.rint(a_out * 255.0), 0, 255).astype(np.uint8)


class ArraySurface:
    """
    CPU pixel buffer, uint8 RGBA.
    """

    def __init__(self, data: ImageBuffer):
        self.data = data

    @property
    def size(self) -> Dimensions:
        h, w = self.data.shape[:2]
        return w, h

    def draw_image(self, pixels: ImageBuffer, matrix: AffineMatrix) -> None:
        k = matrix_quarter_turns(matrix)
        if k is not None:
            self._blit_quarter_turn(pixels, matrix, k)
        else:
            self._warp(pixels, matrix)

    def _blit_quarter_turn(self, pixels: ImageBuffer, matrix: AffineMatrix, k: int) -> None:
        """
        Exact path: lossless rotation + integer placement.
        """
        src_h, src_w = pixels.shape[:2]
        rotated = np.rot90(pixels, k=-k)
        x0, y0, _, _ = transform_bounds(matrix, (src_w, src_h))
        ox, oy = snap(x0), snap(y0)

        sw, sh = self.size
        rh, rw = rotated.shape[:2]
        dx0, dy0 = max(0, ox), max(0, oy)
        dx1, dy1 = min(sw, ox + rw), min(sh, oy + rh)
        if dx1 <= dx0 or dy1 <= dy0:
            return

        block = rotated[dy0 - oy : dy1 - oy, dx0 - ox : dx1 - ox]
        _source_over(self.data[dy0:dy1, dx0:dx1], block)

    def _warp(self, pixels: ImageBuffer, matrix: AffineMatrix) -> None:
        sw, sh = self.size
        warped = cv2.warpAffine(
            np.ascontiguousarray(pixels),
            np.asarray(matrix, dtype=np.float64),
            (sw, sh),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        _source_over(self.data, warped)

    def extract_region(self, box: PixelBox, target_size: Dimensions) -> "ArraySurface":
        x0, y0, x1, y1 = box
        block = self.data[y0:y1, x0:x1]
        if block.shape[0] == 0 or block.shape[1] == 0:
            raise InvalidCropRegion(f"Empty extraction box {box}")

        tw, th = target_size
        bh, bw = block.shape[:2]
        if (bw, bh) != (tw, th):
            interp = cv2.INTER_AREA if (tw <= bw and th <= bh) else cv2.INTER_LANCZOS4
            block = cv2.resize(block, (tw, th), interpolation=interp)

        return ArraySurface(np.ascontiguousarray(block))

    def encode(self, mime_type: str, quality: float, background: str) -> bytes:
        return encode_rgba(self.data, mime_type, quality, background)

    def to_array(self) -> ImageBuffer:
        return self.data


class ArraySurfaceBackend:
    """
    numpy/OpenCV raster backend.
    """

    name = "array"

    def __init__(self, max_side: int = APP_CONFIG.max_surface_side):
        self.max_side = max_side

    def create_surface(self, width: int, height: int) -> ArraySurface:
        if width <= 0 or height <= 0 or width > self.max_side or height > self.max_side:
            raise SurfaceUnavailable(f"Cannot allocate {width}x{height} surface (limit {self.max_side})")
        try:
            data = np.zeros((height, width, 4), dtype=np.uint8)
        except MemoryError as e:
            logger.error(f"Surface allocation failed for {width}x{height}: {e}")
            raise SurfaceUnavailable(f"Out of memory allocating {width}x{height} surface") from e
        return ArraySurface(data)
