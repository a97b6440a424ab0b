"""
Security activity log.

One ``timestamp | action | details`` line per event. Details name entries
and accounts by id or truncated hash; secrets never reach this file.
"""

import os
import logging
import threading
from typing import List, Optional

from . import config
from .models import utcnow

logger = logging.getLogger(__name__)


class ActivityLog:

    def __init__(self, path: Optional[str] = None, max_entries: int = config.MAX_LOG_ENTRIES):
        """
        Args:
            path: Log file, or None to keep the log in memory only
            max_entries: Number of most recent lines kept
        """
        self.path = path
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._lines: List[str] = []
        if path:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    def log(self, action: str, details: str = "") -> None:
        """Log security-relevant actions."""
        line = f"{utcnow().isoformat()} | {action} | {details}"
        with self._lock:
            if self.path is None:
                self._lines.append(line)
                del self._lines[:-self.max_entries]
                return
            lines = self._read()
            lines.append(line)
            try:
                with open(self.path, 'w', encoding='utf-8') as f:
                    f.write("\n".join(lines[-self.max_entries:]) + "\n")
            except OSError as e:
                logger.error(f"Failed to write activity log {self.path}: {e}")

    def _read(self) -> List[str]:
        if self.path is None:
            return list(self._lines)
        if not os.path.exists(self.path):
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return [line.rstrip("\n") for line in f if line.strip()]

    def entries(self) -> List[str]:
        """Logged lines, most recent first."""
        with self._lock:
            return list(reversed(self._read()))

    def clear(self) -> None:
        with self._lock:
            self._lines = []
            if self.path and os.path.exists(self.path):
                os.remove(self.path)
