"""
Disk-backed blob store.

Blobs are written to a temp file beside their destination and moved into
place with os.replace, so readers never see a partial file.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from ..domain.file_storage.storage_repository import IFileStorageRepository

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalFileStorageRepository(IFileStorageRepository):
    """
    Stores each key as a file under ``base_path``.

    Open read handles stay valid on POSIX after the blob is deleted, so a
    download in flight survives a concurrent delete or eviction.
    """

    def __init__(self, base_path: str = "/tmp/filebridge"):
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OSError(f"Cannot create blob directory {self.base_path}: {e}") from e
        self._root = self.base_path.resolve()
        logger.info(f"Blob store at {self._root}")

    def _path_for(self, key: str) -> Path:
        if not key or not key.strip():
            raise ValueError("key cannot be empty")
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise ValueError(f"key resolves outside the blob directory: {key}")
        return path

    def save(self, key: str, content: BinaryIO) -> int:
        target = self._path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, scratch = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        size = 0
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in iter(lambda: content.read(CHUNK_SIZE), b""):
                    out.write(chunk)
                    size += len(chunk)
            os.replace(scratch, target)
        except BaseException:
            Path(scratch).unlink(missing_ok=True)
            self._prune_dir(target.parent)
            raise
        return size

    def get(self, key: str) -> Optional[BinaryIO]:
        try:
            return self._path_for(key).open("rb")
        except (FileNotFoundError, IsADirectoryError, ValueError):
            return None

    def delete(self, key: str) -> bool:
        try:
            target = self._path_for(key)
        except ValueError:
            return True
        target.unlink(missing_ok=True)

        self._prune_dir(target.parent)
        return True

    def exists(self, key: str) -> bool:
        try:
            return self._path_for(key).is_file()
        except (OSError, ValueError):
            return False

    def get_size(self, key: str) -> Optional[int]:
        try:
            path = self._path_for(key)
            return path.stat().st_size if path.is_file() else None
        except (OSError, ValueError):
            return None

    def _prune_dir(self, directory: Path) -> None:
        # Per-file directories go away with their last revision
        if directory == self._root:
            return
        try:
            directory.rmdir()
        except OSError:
            pass
