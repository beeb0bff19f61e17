"""Stage multipart image uploads to a local temp directory before pushing to the media store."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from account_service.core.errors import ValidationError

if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

# Copy chunk size when spooling an upload to disk.
CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class StagedFile:
    """A local temporary copy of an uploaded file."""

    path: Path
    filename: str

    def discard(self) -> None:
        """Remove the local copy if it is still there."""
        self.path.unlink(missing_ok=True)


def stage_upload(
    stream: BinaryIO,
    filename: str | None,
    settings: Settings,
) -> StagedFile:
    """
    Copy an uploaded stream into UPLOAD_TMP_DIR under a unique name.

    Raises ValidationError for a disallowed extension or a file over MAX_UPLOAD_FILE_BYTES.
    """
    base_name = Path(filename or "").name
    suffix = Path(base_name).suffix.lower()
    if suffix not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type; allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )

    directory = Path(settings.UPLOAD_TMP_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / f"{uuid.uuid4().hex}{suffix}"

    written = 0
    try:
        with target.open("wb") as out:
            while chunk := stream.read(CHUNK_BYTES):
                written += len(chunk)
                if written > settings.MAX_UPLOAD_FILE_BYTES:
                    break
                out.write(chunk)
    except Exception:
        target.unlink(missing_ok=True)
        raise
    if written > settings.MAX_UPLOAD_FILE_BYTES:
        target.unlink(missing_ok=True)
        raise ValidationError(
            f"File size must not exceed {settings.MAX_UPLOAD_FILE_BYTES // 1024} KB."
        )
    if written == 0:
        target.unlink(missing_ok=True)
        raise ValidationError("Uploaded file is empty")

    logger.debug("Staged upload %s -> %s (%s bytes)", base_name, target, written)
    return StagedFile(path=target, filename=base_name)


def discard_all(*files: StagedFile | None) -> None:
    """Remove any staged files that were not consumed by the media store."""
    for staged in files:
        if staged is not None:
            staged.discard()

