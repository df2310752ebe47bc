"""
FilePersistence - store the serialized document in a single file.
"""

import logging
import os
from pathlib import Path

from kstor.interfaces.persistence import Persistence


class FilePersistence(Persistence):
    """
    Persistence backed by one file on the local filesystem.

    Writes go to `<path>.tmp`, are synced to disk, then renamed over the
    target so readers see either the old or the new file.
    """

    def __init__(self, file_path: str) -> None:
        """
        Initialize file persistence.

        Args:
            file_path: Path of the store file. The directory is created lazily.
        """
        if not file_path or not file_path.strip():
            raise ValueError("file_path cannot be empty")

        self._file_path = file_path
        self._temp_path = file_path + ".tmp"

    @property
    def path(self) -> str:
        return self._file_path

    def load(self) -> bytes:
        with open(self._file_path, "rb") as f:
            return f.read()

    def save(self, data: bytes) -> None:
        """
        Atomically replace the file contents with `data`.

        Raises:
            OSError: If the temp file cannot be written or renamed.
        """
        try:
            with open(self._temp_path, "wb") as f:
                f.write(data)
                self._perform_flush(f)
            os.replace(self._temp_path, self._file_path)
        except OSError:
            self._remove_temp_file()
            raise

    def ensure_dir(self) -> None:
        Path(self._file_path).parent.mkdir(parents=True, exist_ok=True)
        self._remove_temp_file()

    def close(self) -> None:
        self._remove_temp_file()

    def _perform_flush(self, f) -> None:
        """Push written bytes from Python user space -> OS kernel -> disk."""
        f.flush()
        # Use fdatasync if available (Linux), fallback to fsync (macOS/Windows)
        _sync_data = getattr(os, "fdatasync", os.fsync)
        _sync_data(f.fileno())

    def _remove_temp_file(self) -> None:
        """Remove a temp file left behind by an interrupted save."""
        if not os.path.exists(self._temp_path):
            return
        try:
            os.remove(self._temp_path)
        except OSError as e:
            logging.warning(f"Failed to remove temp file {self._temp_path}: {e}")
