"""
Local staging of uploaded files
"""
import os
import random
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.utils.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class StagedFile:
    """An upload written to local disk for the duration of one request"""
    path: Path
    original_filename: str
    content_type: str
    size: int
    truncated: bool = False

    @property
    def extension(self) -> str:
        return Path(self.original_filename or "").suffix.lower().lstrip(".")


class TempFileManager:
    """Stages uploads under ``upload_dir`` and removes them afterwards"""

    def __init__(self, upload_dir: Union[str, Path], retention_seconds: int = 3600):
        self.upload_dir = Path(upload_dir)
        self.retention_seconds = retention_seconds

    def ensure_dir(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def unique_filename(self, original_filename: Optional[str]) -> str:
        suffix = Path(original_filename or "").suffix
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"

    def cleanup_stale(self) -> int:
        """Delete staged files older than the retention window; returns how many went"""
        if not self.upload_dir.is_dir():
            return 0

        removed = 0
        cutoff = time.time() - self.retention_seconds
        for entry in self.upload_dir.iterdir():
            try:
                if entry.is_file() and entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed += 1
                    logger.info(f"Cleaned up old file: {entry.name}")
            except OSError as e:
                logger.warning(f"Could not process file {entry.name}: {e}")
        return removed

    def remove(self, path: Optional[Union[str, Path]]) -> bool:
        """Best-effort delete; failures are logged, never raised"""
        if not path:
            return False
        try:
            os.remove(path)
            logger.debug(f"Removed temporary file {path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete temporary file {path}: {e}")
            return False

    async def stage(self, upload: UploadFile, max_bytes: Optional[int] = None) -> StagedFile:
        """
        Write an upload to a uniquely named local file.

        When ``max_bytes`` is given, writing stops as soon as the limit is passed and the
        result is flagged ``truncated``; its ``size`` then only proves the limit was exceeded.
        """
        self.ensure_dir()
        try:
            await run_in_threadpool(self.cleanup_stale)
        except Exception as e:
            logger.warning(f"Could not clean up uploads directory: {e}")

        path = self.upload_dir / self.unique_filename(upload.filename)
        size = 0
        truncated = False
        try:
            with open(path, "wb") as fh:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if max_bytes is not None and size > max_bytes:
                        truncated = True
                        break
                    fh.write(chunk)
        except Exception:
            self.remove(path)
            raise

        logger.debug(f"Staged upload {upload.filename!r} at {path} ({size} bytes)")
        return StagedFile(
            path=path,
            original_filename=upload.filename or "",
            content_type=upload.content_type or "application/octet-stream",
            size=size,
            truncated=truncated,
        )

    @asynccontextmanager
    async def staged(self, upload: UploadFile, max_bytes: Optional[int] = None):
        """Stage an upload and guarantee its removal however the block exits"""
        staged_file = await self.stage(upload, max_bytes=max_bytes)
        try:
            yield staged_file
        finally:
            self.remove(staged_file.path)
