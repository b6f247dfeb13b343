import numpy as np
from PyQt6.QtCore import QRect, Qt
from PyQt6.QtGui import QImage, QPainter, QTransform
from cropkit.domain.errors import InvalidCropRegion, SurfaceUnavailable
from cropkit.domain.types import AffineMatrix, Dimensions, ImageBuffer, PixelBox
from cropkit.features.geometry.logic import matrix_quarter_turns
from cropkit.kernel.image.encoding import encode_rgba
from cropkit.kernel.system.config import APP_CONFIG

_FORMAT = QImage.Format.Format_RGBA8888


def array_to_qimage(pixels: ImageBuffer) -> QImage:
    """
    uint8 RGBA -> detached QImage.
    """
    data = np.ascontiguousarray(pixels, dtype=np.uint8)
    h, w = data.shape[:2]
    return QImage(data.tobytes(), w, h, 4 * w, _FORMAT).copy()


def qimage_to_array(image: QImage) -> ImageBuffer:
    img = image.convertToFormat(_FORMAT)
    w, h = img.width(), img.height()
    raw = img.constBits().asstring(img.sizeInBytes())
    rows = np.frombuffer(raw, dtype=np.uint8).reshape(h, img.bytesPerLine())
    return rows[:, : w * 4].reshape(h, w, 4).copy()


class QtSurface:
    """
    QImage/QPainter surface (native 2D graphics backend).
    """

    def __init__(self, image: QImage):
        self.image = image

    @property
    def size(self) -> Dimensions:
        return self.image.width(), self.image.height()

    def draw_image(self, pixels: ImageBuffer, matrix: AffineMatrix) -> None:
        m = np.asarray(matrix, dtype=np.float64)
        src = array_to_qimage(pixels)

        painter = QPainter()
        if not painter.begin(self.image):
            raise SurfaceUnavailable("QPainter could not open the surface")
        try:
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, matrix_quarter_turns(m) is None)
            # QTransform is row-vector: (m11, m12, m21, m22, dx, dy)
            painter.setTransform(QTransform(m[0, 0], m[1, 0], m[0, 1], m[1, 1], m[0, 2], m[1, 2]))
            painter.drawImage(0, 0, src)
        finally:
            painter.end()

    def extract_region(self, box: PixelBox, target_size: Dimensions) -> "QtSurface":
        x0, y0, x1, y1 = box
        if x1 <= x0 or y1 <= y0:
            raise InvalidCropRegion(f"Empty extraction box {box}")

        block = self.image.copy(QRect(x0, y0, x1 - x0, y1 - y0))
        tw, th = target_size
        if (block.width(), block.height()) != (tw, th):
            block = block.scaled(
                tw,
                th,
                Qt.AspectRatioMode.IgnoreAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        if block.isNull():
            raise SurfaceUnavailable(f"Could not allocate {tw}x{th} output surface")
        return QtSurface(block)

    def encode(self, mime_type: str, quality: float, background: str) -> bytes:
        return encode_rgba(self.to_array(), mime_type, quality, background)

    def to_array(self) -> ImageBuffer:
        return qimage_to_array(self.image)


class QtSurfaceBackend:
    name = "qt"

    def __init__(self, max_side: int = APP_CONFIG.max_surface_side):
        self.max_side = max_side

    def create_surface(self, width: int, height: int) -> QtSurface:
        if width <= 0 or height <= 0 or width > self.max_side or height > self.max_side:
            raise SurfaceUnavailable(f"Cannot allocate {width}x{height} surface (limit {self.max_side})")

        image = QImage(width, height, _FORMAT)
        if image.isNull():
            raise SurfaceUnavailable(f"QImage allocation failed for {width}x{height}")
        image.fill(Qt.GlobalColor.transparent)
        return QtSurface(image)
