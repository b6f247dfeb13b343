import contextlib
import os
import time
import uuid
from pathlib import Path
from typing import Optional
from cropkit.domain.errors import UploadError
from cropkit.kernel.image.encoding import extension_for
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)


class LocalUploadPipeline:
    """
    Stores uploads in a local directory and returns their URL.
    """

    def __init__(self, root_dir: str = APP_CONFIG.upload_dir, base_url: Optional[str] = None):
        self.root_dir = root_dir
        self.base_url = base_url.rstrip("/") if base_url else None

    @staticmethod
    def make_filename(mime_type: str) -> str:
        """
        <epoch millis>-<random>.<ext>
        """
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}.{extension_for(mime_type)}"

    def upload(self, data: bytes, mime_type: str) -> str:
        if not data:
            raise UploadError("Refusing to upload empty payload")

        name = self.make_filename(mime_type)
        out_path = os.path.join(self.root_dir, name)

        created = False
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(out_path, "xb") as out_f:
                created = True
                out_f.write(data)
        except OSError as e:
            if created:
                with contextlib.suppress(OSError):
                    os.remove(out_path)
            logger.error(f"Upload write failed for {out_path}: {e}")
            raise UploadError(f"Failed to store upload: {e}") from e

        url = f"{self.base_url}/{name}" if self.base_url else Path(os.path.abspath(out_path)).as_uri()
        logger.info(f"Uploaded {len(data)} bytes -> {url}")
        return url
