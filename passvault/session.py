"""
Session lifecycle: signup, login, idle auto-lock and logout.

The manager owns the in-memory snapshot of the unlocked vault. Mutations
go through :meth:`SessionManager.dispatch`, which applies the pure
reducer from :mod:`passvault.state` and schedules a full save.
"""

import logging
import threading
from typing import Callable, List, Optional

from .audit import ActivityLog
from .biometric import BiometricFallback
from .crypto import Secret
from .errors import (
    AuthenticationFailed,
    BiometricFailed,
    BiometricUnavailable,
    VaultLocked,
)
from .models import Session, UserRecord, VaultSnapshot
from .state import Event, reduce
from .storage import VaultStore

logger = logging.getLogger(__name__)

LockListener = Callable[[str, str], None]


class SessionManager:
    """Tracks the single active session of this process."""

    def __init__(self, vault: VaultStore, biometric: Optional[BiometricFallback] = None,
                 activity_log: Optional[ActivityLog] = None,
                 timer_factory: Callable[..., threading.Timer] = threading.Timer):
        """
        Args:
            vault: Vault store used for every load and save
            biometric: Optional fallback unlock path
            activity_log: Optional security activity log
            timer_factory: Creates the idle timer; same signature as ``threading.Timer``
        """
        self.vault = vault
        self.biometric = biometric
        self.activity_log = activity_log or ActivityLog()
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._session: Optional[Session] = None
        self._snapshot: Optional[VaultSnapshot] = None
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock_listeners: List[LockListener] = []
        self.vault.add_save_listener(self._refresh_fallback)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_unlocked(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def snapshot(self) -> VaultSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise VaultLocked()
        return snapshot

    def add_lock_listener(self, listener: LockListener) -> None:
        """Call ``listener(identity_hash, reason)`` whenever the session ends."""
        self._lock_listeners.append(listener)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def signup(self, passphrase: str) -> VaultSnapshot:
        session, snapshot = self.vault.signup(passphrase)
        self._start(session, snapshot)
        self.activity_log.log("signup", f"user={session.identity_hash[:8]}")
        return snapshot

    def login(self, passphrase: Secret) -> VaultSnapshot:
        try:
            session, snapshot = self.vault.login(passphrase)
        except AuthenticationFailed:
            self.activity_log.log("login_failed")
            raise
        self._start(session, snapshot)
        self.activity_log.log("login", f"user={session.identity_hash[:8]}")
        self._refresh_fallback(session.identity_hash, self.vault.read_blob(session.identity_hash))
        return snapshot

    def unlock_with_biometric(self, passphrase: Secret) -> VaultSnapshot:
        """
        Unlock through the platform authenticator.

        The authenticator must vouch for the account of ``passphrase``. When
        the primary blob is missing or does not authenticate, the fallback
        copy is decrypted with the passphrase and restored.

        Raises:
            BiometricUnavailable: If no authenticator is available
            BiometricFailed: If verification fails; the caller must ask for the master password
            AuthenticationFailed: If the passphrase does not open the vault
        """
        if self.biometric is None or not self.biometric.is_available():
            raise BiometricUnavailable()

        handle = self.biometric.authenticate()
        if handle is None:
            self.activity_log.log("biometric_failed")
            raise BiometricFailed()

        identity_hash = self.vault.registry.identify(passphrase)
        if not self.vault.crypto.secure_compare(handle.encode(), identity_hash.encode()):
            self.activity_log.log("biometric_failed", "handle mismatch")
            raise AuthenticationFailed("handle")

        try:
            return self.login(passphrase)
        except AuthenticationFailed:
            fallback = self.biometric.retrieve_fallback(handle)
            if fallback is None:
                raise
            # Decrypt first so a bad copy is never restored over the primary.
            self.vault.open_blob(fallback, passphrase)
            self.vault.restore_blob(handle, fallback)
            logger.warning(f"Restored vault of user {handle[:8]} from biometric fallback")
            self.activity_log.log("biometric_restore", f"user={handle[:8]}")
            return self.login(passphrase)

    def enable_biometric(self) -> bool:
        """Register the current account with the authenticator and store the fallback copy."""
        session = self._require_session()
        if self.biometric is None or not self.biometric.register(session.identity_hash):
            return False
        self.vault.flush()
        self.biometric.store_fallback(session.identity_hash, self.vault.read_blob(session.identity_hash))
        self.activity_log.log("biometric_enabled", f"user={session.identity_hash[:8]}")
        logger.info(f"Biometric unlock enabled for user {session.identity_hash[:8]}")
        return True

    def disable_biometric(self) -> None:
        session = self._require_session()
        if self.biometric is not None:
            self.biometric.remove(session.identity_hash)
            self.activity_log.log("biometric_disabled", f"user={session.identity_hash[:8]}")

    def _refresh_fallback(self, identity_hash: str, blob: Optional[bytes]) -> None:
        if self.biometric is None or blob is None:
            return
        if self.biometric.is_registered(identity_hash):
            self.biometric.store_fallback(identity_hash, blob)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def dispatch(self, event: Event) -> VaultSnapshot:
        """Apply ``event`` to the unlocked vault and schedule a full save."""
        with self._lock:
            session = self._require_session()
            current = self._snapshot
            updated = reduce(current, event)
            if updated is current:
                return current
            self._snapshot = updated
            timeout_changed = updated.settings.auto_lock_minutes != session.idle_timeout_minutes
            session.idle_timeout_minutes = updated.settings.auto_lock_minutes
            self.vault.save_async(session, updated)
        if timeout_changed:
            logger.info(f"Auto-lock timeout set to {session.idle_timeout_minutes} minutes")
        self.record_activity()
        return updated

    def change_passphrase(self, new_passphrase: str) -> None:
        with self._lock:
            session = self._require_session()
            new_session = self.vault.change_passphrase(session, self._snapshot, new_passphrase)
            self._session = new_session
        if self.biometric is not None:
            self.biometric.remove(session.identity_hash)
        self.activity_log.log("password_changed", f"user={new_session.identity_hash[:8]}")
        self.record_activity()

    def clear_all_data(self) -> None:
        """Delete the current user's vault and registry record and end the session."""
        with self._lock:
            session = self._require_session()
        self.vault.cancel_pending()
        self.logout(reason="clear_all_data")
        self.delete_account(session.identity_hash)

    def delete_account(self, identity_hash: str) -> bool:
        if self._session is not None and self._session.identity_hash == identity_hash:
            self.logout(reason="account_deleted")
        if self.biometric is not None:
            self.biometric.remove(identity_hash)
        self.activity_log.log("account_deleted", f"user={identity_hash[:8]}")
        return self.vault.delete_account(identity_hash)

    def list_users(self) -> List[UserRecord]:
        return self.vault.registry.list()

    # ------------------------------------------------------------------
    # Idle timer
    # ------------------------------------------------------------------

    def record_activity(self) -> None:
        """Signal user interaction: the idle timer starts over."""
        with self._lock:
            if self._session is None:
                return
            self._session.mark_activity()
            self._arm()

    def _arm(self) -> None:
        # Caller holds self._lock.
        self._cancel_timer()
        self._generation += 1
        minutes = self._session.idle_timeout_minutes
        if minutes <= 0:
            return
        timer = self._timer_factory(minutes * 60, self._on_idle_timeout, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_idle_timeout(self, generation: int) -> None:
        # A rearm or logout since this timer was armed supersedes it.
        if self._end("auto_lock", generation):
            logger.info("Locked vault after inactivity")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _start(self, session: Session, snapshot: VaultSnapshot) -> None:
        if self._session is not None:
            self.logout(reason="switch_user")
        with self._lock:
            self._session = session
            self._snapshot = snapshot
            self._arm()

    def _require_session(self) -> Session:
        if self._session is None:
            raise VaultLocked()
        return self._session

    def logout(self, reason: str = "logout") -> bool:
        """
        End the session: wait for pending saves, then drop key material.

        Returns:
            False if there was no session to end
        """
        return self._end(reason)

    def _end(self, reason: str, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._session is None:
                return False
            if generation is not None and generation != self._generation:
                return False
            session = self._session
            self._session = None
            self._snapshot = None
            self._generation += 1
            self._cancel_timer()

        self.vault.flush()
        self.vault.logout(session)
        self.activity_log.log(reason, f"user={session.identity_hash[:8]}")
        for listener in self._lock_listeners:
            listener(session.identity_hash, reason)
        return True
