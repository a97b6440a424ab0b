"""
Storage management for per-user encrypted vaults.

Every save re-encrypts the complete snapshot under a fresh salt and nonce
and overwrites the stored blob. There are no partial writes.

LEGAL NOTICE:
This module handles secure storage of passwords. All data is encrypted locally
and never transmitted. Use only on devices you own or administer.
"""

import logging
import itertools
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Set, Tuple

from . import config
from .blobstore import BlobStore
from .codec import VaultCodec
from .crypto import CryptoManager, Secret, to_bytes
from .errors import AccountExists, AuthenticationFailed, NoSuchAccount
from .models import Session, VaultSnapshot
from .registry import UserRegistry, make_hint

logger = logging.getLogger(__name__)

SaveListener = Callable[[str, bytes], None]


def vault_key(identity_hash: str) -> str:
    return f"{config.VAULT_KEY_PREFIX}{identity_hash}"


class VaultStore:
    """Loads and saves one user's vault: derive key, decrypt, decode and back."""

    def __init__(self, store: BlobStore, crypto: Optional[CryptoManager] = None,
                 registry: Optional[UserRegistry] = None, workers: int = config.SAVE_WORKERS):
        """
        Initialize the vault store.

        Args:
            store: Byte store holding vault blobs and the user registry
            crypto: Crypto manager, defaults to PBKDF2 with the configured iterations
            registry: User registry, defaults to one over ``store``
            workers: Threads available to background saves
        """
        self.store = store
        self.crypto = crypto or CryptoManager()
        self.registry = registry or UserRegistry(store)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vault-save")
        self._write_lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._last_written: Dict[str, int] = {}
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()
        self._listeners: List[SaveListener] = []

    def add_save_listener(self, listener: SaveListener) -> None:
        """Call ``listener(identity_hash, stored_blob)`` after every completed write."""
        self._listeners.append(listener)

    def has_account(self, passphrase: Secret) -> bool:
        return vault_key(self.registry.identify(passphrase)) in self.store

    def read_blob(self, identity_hash: str) -> Optional[bytes]:
        """The stored (base64, encrypted) blob of an account."""
        return self.store.get(vault_key(identity_hash))

    def signup(self, passphrase: str,
               idle_timeout_minutes: Optional[int] = None) -> Tuple[Session, VaultSnapshot]:
        """
        Create a new vault for ``passphrase``.

        Raises:
            AccountExists: If a vault is already stored under this passphrase's identity
        """
        identity_hash = self.registry.identify(passphrase)
        if vault_key(identity_hash) in self.store:
            raise AccountExists()

        snapshot = VaultSnapshot()
        if idle_timeout_minutes is None:
            idle_timeout_minutes = snapshot.settings.auto_lock_minutes
        session = Session.open(identity_hash, to_bytes(passphrase), idle_timeout_minutes)
        self._write(next(self._sequence), session, snapshot)
        self.registry.upsert(identity_hash, make_hint(passphrase))
        logger.info(f"Created vault for user {identity_hash[:8]}")
        return session, snapshot

    def login(self, passphrase: Secret) -> Tuple[Session, VaultSnapshot]:
        """
        Unlock the vault stored for ``passphrase``.

        Raises:
            NoSuchAccount: If no vault is stored for this passphrase
            AuthenticationFailed: If the blob does not decrypt
            MalformedVault: If the decrypted snapshot cannot be decoded
        """
        identity_hash = self.registry.identify(passphrase)
        raw = self.read_blob(identity_hash)
        if raw is None:
            raise NoSuchAccount()

        snapshot = self.open_blob(raw, passphrase)
        self.registry.touch(identity_hash)
        session = Session.open(identity_hash, to_bytes(passphrase), snapshot.settings.auto_lock_minutes)
        logger.info(f"Unlocked vault for user {identity_hash[:8]}")
        return session, snapshot

    def open_blob(self, raw: bytes, passphrase: Secret) -> VaultSnapshot:
        """Decrypt and decode a stored blob."""
        try:
            plaintext = self.crypto.unseal(self.crypto.decode_blob(raw), passphrase)
        except AuthenticationFailed as e:
            logger.debug(f"Vault authentication failed ({e.reason})")
            raise
        return VaultCodec.decode(plaintext)

    def save(self, session: Session, snapshot: VaultSnapshot) -> bool:
        """
        Encode, encrypt and write ``snapshot`` now.

        Returns:
            False if a later save was already written and this one was discarded
        """
        return self._write(next(self._sequence), session, snapshot)

    def save_async(self, session: Session, snapshot: VaultSnapshot) -> Future:
        """
        Schedule a save on a background thread.

        The sequence number is taken here, at submission, so a slower earlier
        save can never overwrite a later one.
        """
        seq = next(self._sequence)
        future = self._executor.submit(self._write, seq, session, snapshot)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Background vault save failed", exc_info=future.exception())

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for every scheduled save to finish."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def cancel_pending(self) -> int:
        """Cancel saves that have not started yet."""
        with self._pending_lock:
            pending = list(self._pending)
        return sum(1 for f in pending if f.cancel())

    def _write(self, seq: int, session: Session, snapshot: VaultSnapshot) -> bool:
        passphrase = session.passphrase()
        # Derivation and encryption finish before anything is written.
        blob = self.crypto.encode_blob(self.crypto.seal(VaultCodec.encode(snapshot), passphrase))

        identity_hash = session.identity_hash
        with self._write_lock:
            if seq <= self._last_written.get(identity_hash, 0):
                logger.warning(f"Discarding stale save #{seq} for user {identity_hash[:8]}")
                return False
            self.store.put(vault_key(identity_hash), blob)
            self._last_written[identity_hash] = seq

        for listener in self._listeners:
            listener(identity_hash, blob)
        return True

    def logout(self, session: Session) -> None:
        """Forget the session's key material. Stored data is not touched."""
        session.close()
        logger.info(f"Locked vault for user {session.identity_hash[:8]}")

    def change_passphrase(self, session: Session, snapshot: VaultSnapshot,
                          new_passphrase: str) -> Session:
        """
        Re-key the vault under a new master passphrase.

        The vault moves to the new identity hash and the old blob is removed.

        Raises:
            AccountExists: If the new passphrase already has a vault
        """
        new_identity = self.registry.identify(new_passphrase)
        if vault_key(new_identity) in self.store:
            raise AccountExists()

        self.flush()
        old_identity = session.identity_hash
        new_session = Session.open(new_identity, to_bytes(new_passphrase), session.idle_timeout_minutes)
        self._write(next(self._sequence), new_session, snapshot)
        self.registry.upsert(new_identity, make_hint(new_passphrase))
        self.delete_account(old_identity)
        session.close()
        logger.info(f"Changed master password of user {old_identity[:8]} to {new_identity[:8]}")
        return new_session

    def restore_blob(self, identity_hash: str, raw: bytes) -> None:
        """Put back a stored blob, e.g. from the biometric fallback copy."""
        with self._write_lock:
            self.store.put(vault_key(identity_hash), raw)

    def delete_account(self, identity_hash: str) -> bool:
        """Remove a user's vault blob and registry record."""
        with self._write_lock:
            removed = self.store.delete(vault_key(identity_hash))
            self._last_written.pop(identity_hash, None)
        removed = self.registry.remove(identity_hash) or removed
        logger.info(f"Deleted account {identity_hash[:8]}")
        return removed

    def close(self) -> None:
        self._executor.shutdown(wait=True)
