# ats_intake/storage/local_files.py

import logging
import os
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles
from fastapi import UploadFile

from ats_intake.core.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class StagedFile:
    """An uploaded file written to the staging area, not yet confirmed permanent."""
    original_name: str
    mime_type: str
    size: int
    file_name: str
    temp_path: Path


def generate_file_name(original_name: str) -> str:
    """resume-<epoch ms>-<random><ext>, independent of the uploaded name."""
    ext = os.path.splitext(original_name or "")[1].lower()
    return f"resume-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class LocalFileStorage:
    """
    Two-directory file store: uploads are staged first and promoted once the
    candidate rows that reference them are safely persisted.
    """

    def __init__(self, staging_dir: Path, upload_dir: Path, max_file_size: int = settings.MAX_FILE_SIZE):
        self.staging_dir = Path(staging_dir)
        self.upload_dir = Path(upload_dir)
        self.max_file_size = max_file_size
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def permanent_path(self, file_name: str) -> Path:
        return self.upload_dir / file_name

    async def stage(self, upload: UploadFile) -> StagedFile:
        """
        Streams an incoming upload into the staging directory.

        Writing stops one byte past ``max_file_size``; the rest of an oversized
        upload is never read, and the recorded size is enough for validation
        to reject it.

        Args:
            upload: The multipart file part.

        Returns:
            A StagedFile with the measured size, capped at max_file_size + 1.
        """
        original_name = upload.filename or "upload"
        file_name = generate_file_name(original_name)
        temp_path = self.staging_dir / file_name
        size = 0

        try:
            async with aiofiles.open(temp_path, "wb") as out:
                while size <= self.max_file_size:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    chunk = chunk[:self.max_file_size + 1 - size]
                    size += len(chunk)
                    await out.write(chunk)
        except Exception:
            self.discard([temp_path])
            raise

        if size > self.max_file_size:
            logger.warning(f"FILE-STORAGE: '{original_name}' exceeds {self.max_file_size} bytes, stopped staging.")
        logger.info(f"FILE-STORAGE: Staged '{original_name}' as '{file_name}' ({size} bytes).")
        return StagedFile(
            original_name=original_name,
            mime_type=upload.content_type or "application/octet-stream",
            size=size,
            file_name=file_name,
            temp_path=temp_path,
        )

    def promote(self, staged: StagedFile) -> Path:
        """Moves a staged file into permanent storage, keeping its generated name."""
        destination = self.permanent_path(staged.file_name)
        shutil.move(str(staged.temp_path), str(destination))
        logger.info(f"FILE-STORAGE: Promoted '{staged.file_name}' to {destination}.")
        return destination

    def discard(self, paths: Iterable[Path]) -> None:
        """Deletes the given files. Missing files are ignored; failures are logged, never raised."""
        for path in paths:
            try:
                Path(path).unlink(missing_ok=True)
                logger.debug(f"FILE-STORAGE: Removed {path}")
            except OSError as e:
                logger.error(f"FILE-STORAGE: Error deleting file {path}: {e}", exc_info=True)

    def resolve(self, file_name: str) -> Optional[Path]:
        """Returns the permanent path of a stored file, or None if it is not on disk."""
        path = self.permanent_path(os.path.basename(file_name))
        return path if path.is_file() else None

    def list_staged(self) -> List[Path]:
        return sorted(p for p in self.staging_dir.iterdir() if p.is_file())

    def list_uploaded(self) -> List[Path]:
        return sorted(p for p in self.upload_dir.iterdir() if p.is_file())


def get_file_storage() -> LocalFileStorage:
    """FastAPI dependency for the configured file store."""
    return LocalFileStorage(Path(settings.STAGING_DIR), Path(settings.UPLOAD_DIR))
