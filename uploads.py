import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 1000


@dataclass(frozen=True)
class StoredFile:
    path: str
    original_name: str
    content_type: Optional[str]
    size: int


def _open_unique(directory: Path, suffix: str):
    """Exclusively create ``<millis><suffix>``, stepping the stamp on collision."""
    stamp = int(time.time() * 1000)
    for offset in range(MAX_NAME_ATTEMPTS):
        target = directory / f"{stamp + offset}{suffix}"
        try:
            return target, open(target, "xb")
        except FileExistsError:
            continue
    raise FileExistsError(f"Could not allocate a unique upload name in {directory}")


def save_upload(upload: UploadFile, directory: Path) -> StoredFile:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    original_name = upload.filename or "upload"
    target, fh = _open_unique(directory, Path(original_name).suffix)
    with fh:
        upload.file.seek(0)
        shutil.copyfileobj(upload.file, fh)
        size = fh.tell()
    logger.info(f"Stored upload {original_name} as {target.name} ({size} bytes)")
    return StoredFile(
        path=str(target),
        original_name=original_name,
        content_type=upload.content_type,
        size=size,
    )


def remove_upload(path: str) -> None:
    Path(path).unlink(missing_ok=True)
