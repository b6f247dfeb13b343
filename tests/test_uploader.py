import re
from pathlib import Path
from unittest.mock import MagicMock, patch
import pytest
from cropkit.domain.errors import UploadError
from cropkit.infrastructure.storage.uploader import LocalUploadPipeline


def test_make_filename():
    name = LocalUploadPipeline.make_filename("image/jpeg")
    assert re.fullmatch(r"\d+-[0-9a-f]{7}\.jpg", name)


def test_upload_writes_file(tmp_path):
    url = LocalUploadPipeline(str(tmp_path / "uploads")).upload(b"payload", "image/png")
    assert url.startswith("file://")
    assert url.endswith(".png")

    files = list((tmp_path / "uploads").iterdir())
    assert len(files) == 1
    assert files[0].read_bytes() == b"payload"
    assert files[0].as_uri() == url


def test_upload_with_base_url(tmp_path):
    url = LocalUploadPipeline(str(tmp_path), base_url="https://cdn.example.com/img/").upload(b"x", "image/webp")
    assert re.fullmatch(r"https://cdn\.example\.com/img/\d+-[0-9a-f]{7}\.webp", url)


def test_upload_rejects_empty(tmp_path):
    with pytest.raises(UploadError):
        LocalUploadPipeline(str(tmp_path)).upload(b"", "image/jpeg")


def test_upload_write_failure(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_bytes(b"")
    with pytest.raises(UploadError):
        LocalUploadPipeline(str(blocker)).upload(b"x", "image/jpeg")
    assert Path(blocker).is_file()


def test_failed_write_leaves_no_partial_file(tmp_path):
    real_open = open

    def open_then_fail(path, mode="r", *args, **kwargs):
        with real_open(path, mode, *args, **kwargs):
            pass
        handle = MagicMock()
        handle.__enter__.return_value.write.side_effect = OSError("No space left on device")
        return handle

    with patch("cropkit.infrastructure.storage.uploader.open", open_then_fail, create=True):
        with pytest.raises(UploadError):
            LocalUploadPipeline(str(tmp_path)).upload(b"payload", "image/jpeg")

    assert list(tmp_path.iterdir()) == []
