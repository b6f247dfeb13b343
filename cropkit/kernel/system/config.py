import os
from cropkit.domain.types import AppConfig, MIME_JPEG
from cropkit.domain.models import OutputSpec


BASE_USER_DIR = os.path.abspath(os.getenv("CROPKIT_USER_DIR", "user"))
APP_CONFIG = AppConfig(
    max_upload_bytes=5 * 1024 * 1024,
    display_max_size=(800, 600),
    surface_backend="array",
    max_surface_side=32767,
    zoom_step=0.1,
    touch_zoom_step=0.2,
    rotation_step=90.0,
    upload_dir=os.path.join(BASE_USER_DIR, "uploads"),
)


DEFAULT_OUTPUT_SPEC = OutputSpec(
    target_width=400,
    target_height=300,
    aspect_ratio=4 / 3,
    mime_type=MIME_JPEG,
    quality=0.8,
    min_zoom=1.0,
    max_zoom=3.0,
)
