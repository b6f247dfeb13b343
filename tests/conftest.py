import os
import pytest

# Configure headless mode for CI/CD
os.environ["QT_QPA_PLATFORM"] = "offscreen"
os.environ["XDG_RUNTIME_DIR"] = "/tmp/runtime-runner"


@pytest.fixture(scope="session", autouse=True)
def qapp():
    from PyQt6.QtWidgets import QApplication
    import sys

    app = QApplication.instance()
    if not app:
        app = QApplication(sys.argv)
    yield app


@pytest.fixture
def gradient_png():
    from image_helpers import encode_image, gradient_rgb

    def _make(width: int, height: int) -> bytes:
        return encode_image(gradient_rgb(width, height), "PNG")

    return _make
