"""
Key-value byte stores holding encrypted vaults and the user registry.

LEGAL NOTICE:
This module handles secure storage of passwords. All data is encrypted locally
and never transmitted. Use only on devices you own or administer.
"""

import os
import re
import stat
import shutil
import logging
import threading
from typing import Dict, List, Optional

from . import config
from .utils import set_owner_only_permissions

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')


class BlobStore:
    """Interface of a local key-value byte store."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def put(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryBlobStore(BlobStore):
    """Process-local store. Nothing survives the process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class FileBlobStore(BlobStore):
    """One owner-only file per key inside a directory."""

    SUFFIX = ".blob"

    def __init__(self, directory: str):
        """
        Initialize the file store.

        Args:
            directory: Directory holding the blobs, created if missing
        """
        self.directory = directory
        self._lock = threading.Lock()
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return os.path.join(self.directory, key + self.SUFFIX)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        with self._lock:
            if not os.path.exists(path):
                return None
            with open(path, 'rb') as f:
                return f.read()

    def put(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp_path = path + '.tmp'
        with self._lock:
            try:
                # The mode only applies on creation, so a leftover file must go first.
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, 'O_BINARY', 0),
                             stat.S_IRUSR | stat.S_IWUSR)
                with os.fdopen(fd, 'wb') as f:
                    f.write(value)
                # Atomic replace using shutil.move
                shutil.move(tmp_path, path)
                if not set_owner_only_permissions(path):
                    logger.warning(f"Failed to set secure file permissions for {path}.")
            except OSError as e:
                logger.error(f"Error writing blob file {path}: {e}", exc_info=True)
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

    def delete(self, key: str) -> bool:
        path = self._path(key)
        with self._lock:
            if not os.path.exists(path):
                return False
            os.remove(path)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            names = os.listdir(self.directory)
        return sorted(n[:-len(self.SUFFIX)] for n in names if n.endswith(self.SUFFIX))


def default_store_directory() -> str:
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)
