import io
from unittest.mock import patch

from fastapi import UploadFile

from uploads import remove_upload, save_upload


def make_upload(name="plan.pdf", data=b"%PDF-1.4 test"):
    return UploadFile(file=io.BytesIO(data), filename=name)


def test_save_creates_directory_and_keeps_extension(tmp_path):
    target = tmp_path / "nested" / "uploads"
    stored = save_upload(make_upload(), target)
    assert stored.path.endswith(".pdf")
    assert stored.original_name == "plan.pdf"
    assert stored.size == len(b"%PDF-1.4 test")
    with open(stored.path, "rb") as fh:
        assert fh.read() == b"%PDF-1.4 test"


def test_same_millisecond_does_not_overwrite(tmp_path):
    with patch("uploads.time.time", return_value=1_700_000_000.0):
        first = save_upload(make_upload(data=b"one"), tmp_path)
        second = save_upload(make_upload(data=b"two"), tmp_path)
    assert first.path != second.path
    with open(first.path, "rb") as fh:
        assert fh.read() == b"one"
    with open(second.path, "rb") as fh:
        assert fh.read() == b"two"


def test_remove_upload_tolerates_missing_file(tmp_path):
    stored = save_upload(make_upload(), tmp_path)
    remove_upload(stored.path)
    remove_upload(stored.path)
