import math
from typing import Optional, Tuple
import numpy as np
from cropkit.domain.errors import InvalidCropRegion
from cropkit.domain.models import CoordinateSpace, CropRegion, RotationMode, Viewport
from cropkit.domain.types import AffineMatrix, Dimensions, PixelBox

# (cos, sin) for exact clockwise quarter turns
_QUARTER_TURNS = ((1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0))
_ANGLE_EPS = 1e-9


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def snap(v: float) -> int:
    """
    Round half up. Keeps integer spans intact when both edges are snapped.
    """
    return int(math.floor(v + 0.5))


def safe_canvas_size(width: float, height: float) -> int:
    """
    Side of a square that holds the image under any rotation about its center.
    """
    max_size = max(width, height)
    return 2 * int(math.ceil((max_size / 2.0) * math.sqrt(2)))


def display_to_natural(
    region: CropRegion,
    viewport: Viewport,
    natural_size: Tuple[float, float],
) -> CropRegion:
    """
    Display px -> natural px, independent x/y factors.
    """
    if viewport.is_empty:
        raise InvalidCropRegion(f"Viewport has zero extent: {viewport.display_width}x{viewport.display_height}")

    nat_w, nat_h = natural_size
    sx = nat_w / viewport.display_width
    sy = nat_h / viewport.display_height

    return CropRegion(
        region.x * sx,
        region.y * sy,
        region.width * sx,
        region.height * sy,
        CoordinateSpace.NATURAL,
    )


def clamp_region(region: CropRegion, bounds: Viewport) -> CropRegion:
    """
    Keeps region inside bounds. Size first, then position.
    """
    bw = max(0.0, float(bounds.display_width))
    bh = max(0.0, float(bounds.display_height))

    w = _clamp(float(region.width), 0.0, bw)
    h = _clamp(float(region.height), 0.0, bh)
    x = _clamp(float(region.x), 0.0, bw - w)
    y = _clamp(float(region.y), 0.0, bh - h)
    return CropRegion(x, y, w, h, region.space)


def clamp_zoom(zoom: float, min_zoom: float = 1.0, max_zoom: float = 3.0) -> float:
    return max(min_zoom, min(max_zoom, zoom))


def normalize_rotation(degrees: float, mode: RotationMode = RotationMode.CONTINUOUS) -> float:
    """
    Continuous: [-180, 180). Discrete: nearest quarter turn in [0, 360).
    """
    if mode == RotationMode.DISCRETE:
        wrapped = ((degrees % 360.0) + 360.0) % 360.0
        return float((snap(wrapped / 90.0) * 90) % 360)
    return ((degrees + 180.0) % 360.0) - 180.0


def quarter_turns(degrees: float) -> Optional[int]:
    """
    Clockwise quarter turns if angle is an exact multiple of 90, else None.
    """
    wrapped = degrees % 360.0
    k = snap(wrapped / 90.0)
    if abs(wrapped - k * 90.0) > _ANGLE_EPS:
        return None
    return k % 4


def matrix_quarter_turns(matrix: AffineMatrix) -> Optional[int]:
    """
    Detects pure quarter-turn linear parts (no scale, no shear).
    """
    linear = np.asarray(matrix, dtype=np.float64)[:2, :2]
    for k, (cos_t, sin_t) in enumerate(_QUARTER_TURNS):
        expected = np.array([[cos_t, -sin_t], [sin_t, cos_t]])
        if np.allclose(linear, expected, atol=_ANGLE_EPS):
            return k
    return None


def compose_draw_matrix(
    surface_size: int,
    natural_size: Dimensions,
    degrees: float,
) -> AffineMatrix:
    """
    translate(s/2, s/2) . rotate(theta) . translate(-w/2, -h/2), y-down, clockwise.
    """
    nat_w, nat_h = natural_size
    k = quarter_turns(degrees)
    if k is not None:
        cos_t, sin_t = _QUARTER_TURNS[k]
    else:
        theta = math.radians(degrees)
        cos_t, sin_t = math.cos(theta), math.sin(theta)

    half = surface_size / 2.0
    to_center = np.array([[1.0, 0.0, half], [0.0, 1.0, half], [0.0, 0.0, 1.0]])
    rotation = np.array([[cos_t, -sin_t, 0.0], [sin_t, cos_t, 0.0], [0.0, 0.0, 1.0]])
    from_center = np.array([[1.0, 0.0, -nat_w / 2.0], [0.0, 1.0, -nat_h / 2.0], [0.0, 0.0, 1.0]])

    return (to_center @ rotation @ from_center)[:2]


def transform_bounds(matrix: AffineMatrix, size: Dimensions) -> Tuple[float, float, float, float]:
    """
    Axis-aligned bounds (x0, y0, x1, y1) of a w x h rect under matrix.
    """
    w, h = size
    corners = np.array([[0.0, 0.0, 1.0], [w, 0.0, 1.0], [0.0, h, 1.0], [w, h, 1.0]])
    mapped = corners @ np.asarray(matrix, dtype=np.float64).T
    return (
        float(mapped[:, 0].min()),
        float(mapped[:, 1].min()),
        float(mapped[:, 0].max()),
        float(mapped[:, 1].max()),
    )


def fit_viewport(natural_size: Tuple[float, float], max_size: Tuple[float, float]) -> Viewport:
    """
    Contain-fit into a display box. Never upscales.
    """
    nat_w, nat_h = natural_size
    max_w, max_h = max_size
    if nat_w <= 0 or nat_h <= 0:
        return Viewport(1.0, 1.0)

    scale = min(1.0, max_w / nat_w, max_h / nat_h)
    return Viewport(max(1.0, nat_w * scale), max(1.0, nat_h * scale))


def centered_region(viewport: Viewport, aspect: float) -> CropRegion:
    """
    Largest region of the given aspect, centered.
    """
    vw, vh = viewport.size
    if aspect <= 0 or viewport.is_empty:
        return CropRegion(0.0, 0.0, max(0.0, vw), max(0.0, vh))

    if vw / vh > aspect:
        h = vh
        w = vh * aspect
    else:
        w = vw
        h = vw / aspect

    return CropRegion((vw - w) / 2.0, (vh - h) / 2.0, w, h)


def zoom_region(region: CropRegion, zoom: float) -> CropRegion:
    """
    Area selected at a given magnification, shrunk about the region center.
    """
    if zoom <= 0 or zoom == 1.0:
        return region

    cx, cy = region.center
    w = region.width / zoom
    h = region.height / zoom
    return CropRegion(cx - w / 2.0, cy - h / 2.0, w, h, region.space)


def fit_region(region: CropRegion, bounds: Viewport) -> CropRegion:
    """
    Uniformly shrinks an oversized region about its center until it fits, then clamps.
    Aspect is preserved, unlike clamp_region.
    """
    if bounds.is_empty or region.is_degenerate:
        return clamp_region(region, bounds)

    scale = min(1.0, bounds.display_width / region.width, bounds.display_height / region.height)
    if scale < 1.0:
        cx, cy = region.center
        w = region.width * scale
        h = region.height * scale
        region = CropRegion(cx - w / 2.0, cy - h / 2.0, w, h, region.space)
    return clamp_region(region, bounds)


def rescale_region(region: CropRegion, old: Viewport, new: Viewport) -> CropRegion:
    """
    Proportional rescale after a layout change.
    """
    if old.is_empty:
        return region

    sx = new.display_width / old.display_width
    sy = new.display_height / old.display_height
    return CropRegion(region.x * sx, region.y * sy, region.width * sx, region.height * sy, region.space)


def to_surface_frame(region: CropRegion, surface_size: int, natural_size: Tuple[float, float]) -> CropRegion:
    """
    Natural px -> intermediate surface px (image centered on the surface).
    """
    nat_w, nat_h = natural_size
    off_x = (surface_size - nat_w) / 2.0
    off_y = (surface_size - nat_h) / 2.0
    return CropRegion(
        region.x + off_x,
        region.y + off_y,
        region.width,
        region.height,
        CoordinateSpace.SURFACE,
    )


def region_to_pixel_box(region: CropRegion, limit: Dimensions) -> PixelBox:
    """
    Snaps to integer pixel edges, clipped to [0, limit].
    """
    lw, lh = limit
    x0 = int(_clamp(snap(region.x), 0, lw))
    y0 = int(_clamp(snap(region.y), 0, lh))
    x1 = int(_clamp(snap(region.right), 0, lw))
    y1 = int(_clamp(snap(region.bottom), 0, lh))
    return x0, y0, x1, y1
