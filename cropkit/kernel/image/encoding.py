import base64
import io
import numpy as np
from PIL import Image, ImageColor
from cropkit.domain.types import ImageBuffer, MIME_JPEG, MIME_PNG, MIME_WEBP

_PIL_FORMATS = {
    MIME_JPEG: "JPEG",
    MIME_PNG: "PNG",
    MIME_WEBP: "WEBP",
}

_EXTENSIONS = {
    MIME_JPEG: "jpg",
    MIME_PNG: "png",
    MIME_WEBP: "webp",
}


def pil_format(mime_type: str) -> str:
    try:
        return _PIL_FORMATS[mime_type]
    except KeyError:
        raise ValueError(f"Unsupported output type: {mime_type}") from None


def extension_for(mime_type: str) -> str:
    """
    File extension for a MIME type, falling back to the subtype.
    """
    return _EXTENSIONS.get(mime_type, mime_type.split("/")[-1] or "bin")


def pil_quality(quality: float) -> int:
    """
    [0, 1] -> Pillow's 1..100 scale.
    """
    return int(max(1, min(100, round(quality * 100))))


def flatten_alpha(img: Image.Image, background: str) -> Image.Image:
    """
    Composites RGBA onto an opaque background (formats without alpha).
    """
    base = Image.new("RGB", img.size, ImageColor.getrgb(background))
    if img.mode == "RGBA":
        base.paste(img, mask=img.getchannel("A"))
    else:
        base.paste(img.convert("RGB"))
    return base


def encode_rgba(
    pixels: ImageBuffer,
    mime_type: str,
    quality: float,
    background: str = "#000000",
) -> bytes:
    """
    Encodes a uint8 RGBA buffer.
    """
    fmt = pil_format(mime_type)
    img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    buf = io.BytesIO()

    if fmt == "JPEG":
        flatten_alpha(img, background).save(buf, format=fmt, quality=pil_quality(quality))
    elif fmt == "WEBP":
        img.save(buf, format=fmt, quality=pil_quality(quality))
    else:
        img.save(buf, format=fmt)

    return buf.getvalue()


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
