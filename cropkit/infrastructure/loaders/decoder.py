import io
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError
from cropkit.domain.errors import DecodeError, FileRejected
from cropkit.domain.models import SourceImage
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


def validate_upload(data: bytes, mime_type: str, max_bytes: int = APP_CONFIG.max_upload_bytes) -> None:
    """
    Rejects non-image types, empty files and oversized files.
    """
    if not (mime_type or "").lower().startswith("image/"):
        raise FileRejected(f"Not an image type: {mime_type!r}")
    if not data:
        raise FileRejected("Empty file")
    if len(data) > max_bytes:
        raise FileRejected(f"Image size must be less than {max_bytes / (1024 * 1024):g}MB")


class ImageDecoder:
    """
    Bytes -> SourceImage (uint8 RGBA, EXIF orientation applied).
    """

    def __init__(self, max_bytes: int = APP_CONFIG.max_upload_bytes):
        self.max_bytes = max_bytes

    def decode(self, data: bytes, mime_type: str) -> SourceImage:
        validate_upload(data, mime_type, self.max_bytes)

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                oriented = ImageOps.exif_transpose(img)
                pixels = np.ascontiguousarray(np.asarray(oriented.convert("RGBA"), dtype=np.uint8))
        except _DECODE_ERRORS as e:
            logger.error(f"Decode failed ({mime_type}, {len(data)} bytes): {e}")
            raise DecodeError(f"Not a decodable image: {e}") from e

        h, w = pixels.shape[:2]
        logger.debug(f"Decoded {mime_type} {w}x{h}")
        return SourceImage(pixels=pixels, natural_width=w, natural_height=h, mime_type=mime_type)


# Global instance for shared use
image_decoder = ImageDecoder()
