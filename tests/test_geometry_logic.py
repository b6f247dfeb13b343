import math
import numpy as np
import pytest
from cropkit.domain.errors import InvalidCropRegion
from cropkit.domain.models import CoordinateSpace, CropRegion, RotationMode, Viewport
from cropkit.features.geometry.logic import (
    centered_region,
    clamp_region,
    clamp_zoom,
    compose_draw_matrix,
    display_to_natural,
    fit_region,
    fit_viewport,
    matrix_quarter_turns,
    normalize_rotation,
    quarter_turns,
    region_to_pixel_box,
    rescale_region,
    safe_canvas_size,
    snap,
    to_surface_frame,
    transform_bounds,
    zoom_region,
)


def _region_tuple(r: CropRegion):
    return (r.x, r.y, r.width, r.height)


def test_snap_rounds_half_up():
    assert snap(2.5) == 3
    assert snap(2.49) == 2
    assert snap(-0.5) == 0
    assert snap(-0.51) == -1


def test_safe_canvas_size_landscape():
    # 2 * ceil(600 * sqrt(2))
    assert safe_canvas_size(1200, 800) == 1698


def test_safe_canvas_size_holds_any_rotation():
    for w in (1, 2, 3, 7, 100, 101, 640, 1200, 4000):
        for h in (1, 5, 99, 480, 800, 3000):
            s = safe_canvas_size(w, h)
            assert s % 2 == 0
            assert s >= math.hypot(w, h) - 1e-9


def test_display_to_natural_independent_axes():
    region = CropRegion(10, 20, 30, 40)
    natural = display_to_natural(region, Viewport(100, 50), (200, 200))
    assert _region_tuple(natural) == (20, 80, 60, 160)
    assert natural.space == CoordinateSpace.NATURAL


def test_display_to_natural_identity_when_viewport_matches():
    region = CropRegion(200, 100, 800, 600)
    natural = display_to_natural(region, Viewport(1200, 800), (1200, 800))
    assert _region_tuple(natural) == (200, 100, 800, 600)


def test_display_to_natural_rejects_empty_viewport():
    with pytest.raises(InvalidCropRegion):
        display_to_natural(CropRegion(0, 0, 10, 10), Viewport(0, 100), (100, 100))


def test_clamp_region_translates_inside():
    bounds = Viewport(100, 100)
    assert _region_tuple(clamp_region(CropRegion(-10, 5, 50, 50), bounds)) == (0, 5, 50, 50)
    assert _region_tuple(clamp_region(CropRegion(90, 90, 50, 50), bounds)) == (50, 50, 50, 50)


def test_clamp_region_shrinks_oversized():
    clamped = clamp_region(CropRegion(10, 10, 200, 300), Viewport(100, 80))
    assert _region_tuple(clamped) == (0, 0, 100, 80)


def test_clamp_region_idempotent():
    rng = np.random.default_rng(0)
    bounds = Viewport(640, 480)
    for _ in range(200):
        x, y = rng.uniform(-1000, 1000, 2)
        w, h = rng.uniform(0, 1200, 2)
        once = clamp_region(CropRegion(x, y, w, h), bounds)
        twice = clamp_region(once, bounds)
        assert once == twice
        assert once.x >= 0 and once.y >= 0
        assert once.right <= 640 + 1e-9 and once.bottom <= 480 + 1e-9


def test_clamp_region_keeps_space_tag():
    clamped = clamp_region(CropRegion(0, 0, 5, 5, CoordinateSpace.NATURAL), Viewport(10, 10))
    assert clamped.space == CoordinateSpace.NATURAL


def test_clamp_zoom():
    assert clamp_zoom(5.0, 1.0, 3.0) == 3.0
    assert clamp_zoom(0.2, 1.0, 3.0) == 1.0
    assert clamp_zoom(2.5, 1.0, 3.0) == 2.5
    for z in np.linspace(-5, 10, 61):
        assert 1.0 <= clamp_zoom(float(z)) <= 3.0


def test_normalize_rotation_continuous():
    assert normalize_rotation(190) == -170
    assert normalize_rotation(-180) == -180
    assert normalize_rotation(180) == -180
    assert normalize_rotation(45) == 45
    assert normalize_rotation(540) == -180


def test_normalize_rotation_discrete():
    mode = RotationMode.DISCRETE
    assert normalize_rotation(-90, mode) == 270
    assert normalize_rotation(405, mode) == 90
    assert normalize_rotation(359, mode) == 0
    assert normalize_rotation(44, mode) == 0
    assert normalize_rotation(45, mode) == 90
    assert normalize_rotation(360, mode) == 0


def test_normalize_rotation_idempotent():
    for mode in RotationMode:
        for deg in range(-720, 721, 17):
            once = normalize_rotation(deg, mode)
            assert normalize_rotation(once, mode) == once


def test_quarter_turns():
    assert quarter_turns(0) == 0
    assert quarter_turns(90) == 1
    assert quarter_turns(180.0) == 2
    assert quarter_turns(-90) == 3
    assert quarter_turns(360) == 0
    assert quarter_turns(45) is None
    assert quarter_turns(90.5) is None


def test_compose_draw_matrix_centers_image():
    m = compose_draw_matrix(10, (4, 2), 0)
    assert np.allclose(m @ np.array([0.0, 0.0, 1.0]), (3, 4))
    assert np.allclose(m @ np.array([4.0, 2.0, 1.0]), (7, 6))


def test_compose_draw_matrix_clockwise_quarter_turn():
    m = compose_draw_matrix(10, (4, 2), 90)
    # top-left corner ends up top-right of the rotated rect
    assert np.allclose(m @ np.array([0.0, 0.0, 1.0]), (6, 3))
    assert transform_bounds(m, (4, 2)) == pytest.approx((4, 3, 6, 7))
    assert matrix_quarter_turns(m) == 1


def test_matrix_quarter_turns_rejects_arbitrary_angle():
    assert matrix_quarter_turns(compose_draw_matrix(100, (40, 20), 30)) is None
    assert matrix_quarter_turns(compose_draw_matrix(100, (40, 20), 270)) == 3


def test_rotated_image_stays_on_safe_canvas():
    w, h = 1200, 800
    s = safe_canvas_size(w, h)
    for deg in (0, 17, 45, 90, 133, 180, 270, 315):
        x0, y0, x1, y1 = transform_bounds(compose_draw_matrix(s, (w, h), deg), (w, h))
        assert x0 >= 0 and y0 >= 0
        assert x1 <= s and y1 <= s


def test_fit_viewport():
    assert fit_viewport((1600, 1200), (800, 600)).size == (800, 600)
    assert fit_viewport((400, 300), (800, 600)).size == (400, 300)
    fitted = fit_viewport((1200, 800), (800, 600))
    assert fitted.display_width == pytest.approx(800)
    assert fitted.display_height == pytest.approx(533.333, rel=1e-4)


def test_centered_region_wide_viewport():
    region = centered_region(Viewport(1200, 800), 4 / 3)
    assert region.height == pytest.approx(800)
    assert region.width == pytest.approx(1066.667, rel=1e-4)
    assert region.x == pytest.approx(66.667, rel=1e-4)
    assert region.y == 0


def test_centered_region_tall_viewport():
    region = centered_region(Viewport(300, 600), 4 / 3)
    assert _region_tuple(region) == pytest.approx((0, 187.5, 300, 225))


def test_zoom_region_shrinks_about_center():
    zoomed = zoom_region(CropRegion(100, 100, 200, 100), 2.0)
    assert _region_tuple(zoomed) == (150, 125, 100, 50)
    assert zoom_region(CropRegion(1, 2, 3, 4), 1.0) == CropRegion(1, 2, 3, 4)


def test_fit_region_keeps_aspect_when_zoomed_out():
    fitted = fit_region(zoom_region(CropRegion(0, 0, 1200, 800), 0.5), Viewport(1200, 800))
    assert _region_tuple(fitted) == (0, 0, 1200, 800)

    fitted = fit_region(CropRegion(-100, 0, 400, 200), Viewport(300, 300))
    assert fitted.width / fitted.height == pytest.approx(2.0)
    assert _region_tuple(fitted) == pytest.approx((0, 25, 300, 150))

    inside = CropRegion(10, 10, 50, 50)
    assert fit_region(inside, Viewport(100, 100)) == inside


def test_rescale_region():
    scaled = rescale_region(CropRegion(10, 10, 20, 20), Viewport(100, 100), Viewport(200, 50))
    assert _region_tuple(scaled) == (20, 5, 40, 10)


def test_to_surface_frame_offsets_by_margin():
    framed = to_surface_frame(CropRegion(0, 0, 10, 10), 20, (10, 6))
    assert _region_tuple(framed) == (5, 7, 10, 10)
    assert framed.space == CoordinateSpace.SURFACE


def test_region_to_pixel_box_keeps_integer_spans():
    # odd width centered on an even canvas: both edges snap the same way
    assert region_to_pixel_box(CropRegion(21.5, 0, 101, 10), (144, 144)) == (22, 0, 123, 10)


def test_region_to_pixel_box_clips():
    assert region_to_pixel_box(CropRegion(-5, -5, 20, 20), (10, 10)) == (0, 0, 10, 10)
