"""
Biometric unlock support.

The platform authenticator (fingerprint, Windows Hello, a PIN prompt)
only vouches for a handle. This module never sees a plaintext passphrase
or plaintext vault contents: the fallback copy it keeps is the same
AES-GCM blob the vault store writes, and opening it still takes the
master passphrase.

LEGAL NOTICE:
This module handles biometric authentication. It must only be used
for legitimate personal password management on devices you own or administer.
"""

import os
import json
import base64
import hashlib
import logging
from typing import Callable, Dict, Optional

from cryptography.hazmat.primitives import constant_time

from . import config
from .blobstore import BlobStore

logger = logging.getLogger(__name__)

PIN_PROMPT_ENTER = "Enter your PIN:"
PIN_PROMPT_SETUP = "Set up your PIN for quick authentication:"


class PlatformAuthenticator:
    """Interface of an external user-verifying authenticator."""

    def is_available(self) -> bool:
        raise NotImplementedError

    def register(self, handle: str) -> bool:
        raise NotImplementedError

    def authenticate(self) -> Optional[str]:
        """Run the verification ceremony; the verified handle, or None."""
        raise NotImplementedError


class PinAuthenticator(PlatformAuthenticator):
    """
    PIN-based authenticator for devices without a biometric sensor.

    ``prompt`` is called with a message and returns the PIN the user typed,
    or None when they cancel.
    """

    def __init__(self, store: BlobStore, prompt: Callable[[str], Optional[str]]):
        self.store = store
        self.prompt = prompt

    def _load(self) -> Dict[str, Dict[str, str]]:
        raw = self.store.get(config.PIN_AUTH_KEY)
        if raw is None:
            return {}
        try:
            return json.loads(raw.decode('utf-8'))
        except ValueError as e:
            logger.error(f"PIN authenticator record is unreadable: {e}")
            return {}

    @staticmethod
    def _hash_pin(pin: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac('sha256', pin.encode('utf-8'), salt, config.PIN_HASH_ITERATIONS)

    def is_available(self) -> bool:
        return True

    def register(self, handle: str) -> bool:
        pin = self.prompt(PIN_PROMPT_SETUP)
        if not pin:
            logger.info("PIN setup cancelled")
            return False

        salt = os.urandom(16)
        records = self._load()
        records[handle] = {
            'salt': base64.b64encode(salt).decode(),
            'auth_hash': base64.b64encode(self._hash_pin(pin, salt)).decode(),
        }
        self.store.put(config.PIN_AUTH_KEY, json.dumps(records).encode('utf-8'))
        logger.info("PIN set up successfully")
        return True

    def authenticate(self) -> Optional[str]:
        records = self._load()
        if not records:
            return None

        pin = self.prompt(PIN_PROMPT_ENTER)
        if not pin:
            logger.info("PIN authentication cancelled")
            return None

        for handle, record in records.items():
            salt = base64.b64decode(record['salt'])
            stored = base64.b64decode(record['auth_hash'])
            if constant_time.bytes_eq(self._hash_pin(pin, salt), stored):
                logger.info("PIN authentication successful")
                return handle

        logger.warning("PIN authentication failed")
        return None

    def unregister(self, handle: str) -> None:
        records = self._load()
        if records.pop(handle, None) is not None:
            self.store.put(config.PIN_AUTH_KEY, json.dumps(records).encode('utf-8'))


class BiometricFallback:
    """Keeps a copy of a user's encrypted vault blob behind a platform authenticator."""

    def __init__(self, authenticator: PlatformAuthenticator, store: BlobStore):
        self.authenticator = authenticator
        self.store = store

    def is_available(self) -> bool:
        try:
            return self.authenticator.is_available()
        except Exception as e:
            logger.warning(f"Biometric availability check failed: {e}")
            return False

    def register(self, handle: str) -> bool:
        """
        Register ``handle`` with the platform authenticator.

        Returns:
            True if the credential was registered
        """
        if not self.is_available():
            return False
        try:
            registered = self.authenticator.register(handle)
        except Exception as e:
            logger.warning(f"Biometric registration failed: {e}")
            return False
        if registered:
            self.store.put(f"{config.BIOMETRIC_KEY_PREFIX}{handle}", b"registered")
        return registered

    def is_registered(self, handle: str) -> bool:
        return f"{config.BIOMETRIC_KEY_PREFIX}{handle}" in self.store

    def authenticate(self) -> Optional[str]:
        """The handle vouched for by the authenticator, or None on any failure."""
        if not self.is_available():
            return None
        try:
            handle = self.authenticator.authenticate()
        except Exception as e:
            logger.warning(f"Biometric authentication failed: {e}")
            return None
        if handle is None or not self.is_registered(handle):
            return None
        return handle

    def store_fallback(self, handle: str, encrypted_blob: bytes) -> None:
        self.store.put(f"{config.BIOMETRIC_FALLBACK_PREFIX}{handle}", encrypted_blob)

    def retrieve_fallback(self, handle: str) -> Optional[bytes]:
        return self.store.get(f"{config.BIOMETRIC_FALLBACK_PREFIX}{handle}")

    def remove(self, handle: str) -> None:
        """Drop the registration and the fallback copy."""
        self.store.delete(f"{config.BIOMETRIC_KEY_PREFIX}{handle}")
        self.store.delete(f"{config.BIOMETRIC_FALLBACK_PREFIX}{handle}")
        if isinstance(self.authenticator, PinAuthenticator):
            self.authenticator.unregister(handle)
