"""
Shared directory of the accounts on this device.

Accounts are located by an identity hash, a SHA-256 digest of the master
passphrase. The hash only finds the right vault blob; the vault key itself
comes from the slow, salted KDF in :mod:`passvault.crypto`.
"""

import json
import hashlib
import logging
import threading
from typing import List, Optional

from . import config
from .blobstore import BlobStore
from .crypto import Secret, to_bytes
from .errors import MalformedVault
from .models import UserRecord, utcnow

logger = logging.getLogger(__name__)


def make_hint(passphrase: str) -> str:
    """Memory aid shown next to an account: first three characters and the length."""
    return f"{passphrase[:3]}... ({len(passphrase)} chars)"


class UserRegistry:

    def __init__(self, store: BlobStore):
        self.store = store
        self._lock = threading.Lock()

    @staticmethod
    def identify(passphrase: Secret) -> str:
        return hashlib.sha256(to_bytes(passphrase)).hexdigest()

    def _load(self) -> List[UserRecord]:
        raw = self.store.get(config.USERS_KEY)
        if raw is None:
            return []
        try:
            return [UserRecord.from_dict(u) for u in json.loads(raw.decode('utf-8'))]
        except (ValueError, KeyError, TypeError) as e:
            raise MalformedVault(f"user registry is unreadable ({e})") from e

    def _store(self, users: List[UserRecord]) -> None:
        data = json.dumps([u.to_dict() for u in users], indent=2)
        self.store.put(config.USERS_KEY, data.encode('utf-8'))

    def list(self) -> List[UserRecord]:
        with self._lock:
            return self._load()

    def get(self, identity_hash: str) -> Optional[UserRecord]:
        for user in self.list():
            if user.identity_hash == identity_hash:
                return user
        return None

    def upsert(self, identity_hash: str, hint: str) -> UserRecord:
        """
        Add a user, or refresh the last-login time of an existing one.

        The hint of an existing record is left unchanged.
        """
        now = utcnow()
        with self._lock:
            users = self._load()
            for i, user in enumerate(users):
                if user.identity_hash == identity_hash:
                    users[i] = UserRecord(user.identity_hash, user.created_at, now, user.hint)
                    self._store(users)
                    return users[i]
            record = UserRecord(identity_hash, now, now, hint)
            users.append(record)
            self._store(users)
            logger.info(f"Registered user {identity_hash[:8]}")
            return record

    def touch(self, identity_hash: str) -> Optional[UserRecord]:
        """Refresh the last-login time; ``None`` when the user is not registered."""
        if self.get(identity_hash) is None:
            return None
        return self.upsert(identity_hash, "")

    def remove(self, identity_hash: str) -> bool:
        with self._lock:
            users = self._load()
            remaining = [u for u in users if u.identity_hash != identity_hash]
            if len(remaining) == len(users):
                return False
            self._store(remaining)
        logger.info(f"Removed user {identity_hash[:8]}")
        return True
