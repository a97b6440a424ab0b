"""
Cryptographic operations for the vault.

Key derivation turns a master passphrase and a random salt into an AES-256
key. Vault blobs are sealed with AES-256-GCM and laid out as::

    salt (32) || nonce (16) || ciphertext || tag (16)

LEGAL NOTICE:
This module handles encryption/decryption of sensitive data. It must only be used
for legitimate personal password management on devices you own or administer.
"""

import os
import base64
import binascii
import logging
from typing import Tuple, Union

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import constant_time, hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import config
from .errors import AuthenticationFailed

logger = logging.getLogger(__name__)

Secret = Union[str, bytes, bytearray]


def to_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode('utf-8')
    return bytes(secret)


class CryptoManager:
    """Handles all cryptographic operations for the vault."""

    SALT_SIZE = config.SALT_SIZE
    KEY_SIZE = config.KEY_SIZE
    NONCE_SIZE = config.NONCE_SIZE
    TAG_SIZE = config.TAG_SIZE
    HEADER_SIZE = SALT_SIZE + NONCE_SIZE

    def __init__(self, kdf: str = config.DEFAULT_KDF,
                 iterations: int = config.PBKDF2_ITERATIONS):
        """
        Initialize the crypto manager.

        Args:
            kdf: Key derivation to use, ``"pbkdf2"`` or ``"argon2id"``
            iterations: PBKDF2 iteration count (ignored for Argon2id)
        """
        if kdf not in (config.KDF_PBKDF2, config.KDF_ARGON2ID):
            raise ValueError(f"Unknown key derivation: {kdf}")
        if iterations < config.PBKDF2_MIN_ITERATIONS:
            raise ValueError(f"PBKDF2 iterations must be at least {config.PBKDF2_MIN_ITERATIONS}")
        if kdf == config.KDF_PBKDF2 and iterations < config.PBKDF2_RECOMMENDED_MIN_ITERATIONS:
            logger.warning(f"PBKDF2 with {iterations} iterations is below the recommended "
                           f"{config.PBKDF2_RECOMMENDED_MIN_ITERATIONS}; keys are cheap to brute-force")
        self.kdf = kdf
        self.iterations = iterations
        self.backend = default_backend()

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(self.SALT_SIZE)

    def derive_key(self, passphrase: Secret, salt: bytes) -> bytes:
        """
        Derive an encryption key from a passphrase using PBKDF2 or Argon2id.

        The key is returned only once derivation has fully completed.

        Args:
            passphrase: The master passphrase
            salt: Random salt for key derivation

        Returns:
            32-byte encryption key
        """
        if len(salt) != self.SALT_SIZE:
            raise ValueError(f"Salt must be {self.SALT_SIZE} bytes, got {len(salt)}")

        secret = to_bytes(passphrase)
        if self.kdf == config.KDF_ARGON2ID:
            return hash_secret_raw(
                secret=secret,
                salt=salt,
                time_cost=config.ARGON2_TIME_COST,
                memory_cost=config.ARGON2_MEMORY_COST,
                parallelism=config.ARGON2_PARALLELISM,
                hash_len=self.KEY_SIZE,
                type=Type.ID
            )

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_SIZE,
            salt=salt,
            iterations=self.iterations,
            backend=self.backend
        )
        return kdf.derive(secret)

    def encrypt(self, plaintext: bytes, key: bytes, salt: bytes) -> bytes:
        """
        Encrypt data using AES-256-GCM with a fresh random nonce.

        Args:
            plaintext: Data to encrypt
            key: 32-byte encryption key derived from ``salt``
            salt: Salt the key was derived from, stored in the blob header

        Returns:
            salt || nonce || ciphertext || tag
        """
        self._check_key(key)
        if len(salt) != self.SALT_SIZE:
            raise ValueError(f"Salt must be {self.SALT_SIZE} bytes, got {len(salt)}")

        nonce = os.urandom(self.NONCE_SIZE)
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce),
            backend=self.backend
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return salt + nonce + ciphertext + encryptor.tag

    def split_blob(self, blob: bytes) -> Tuple[bytes, bytes, bytes, bytes]:
        """
        Split a sealed blob into (salt, nonce, ciphertext, tag).

        Raises:
            AuthenticationFailed: If the blob is too short to hold a header and tag
        """
        if len(blob) < self.HEADER_SIZE + self.TAG_SIZE:
            raise AuthenticationFailed("truncated")
        salt = blob[:self.SALT_SIZE]
        nonce = blob[self.SALT_SIZE:self.HEADER_SIZE]
        ciphertext = blob[self.HEADER_SIZE:-self.TAG_SIZE]
        tag = blob[-self.TAG_SIZE:]
        return salt, nonce, ciphertext, tag

    def decrypt(self, blob: bytes, key: bytes) -> bytes:
        """
        Decrypt a sealed blob using AES-256-GCM.

        Args:
            blob: salt || nonce || ciphertext || tag
            key: 32-byte encryption key

        Returns:
            Decrypted plaintext

        Raises:
            AuthenticationFailed: If the blob is truncated or fails verification
        """
        self._check_key(key)
        _, nonce, ciphertext, tag = self.split_blob(blob)
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce, tag),
            backend=self.backend
        )
        decryptor = cipher.decryptor()
        try:
            return decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag:
            raise AuthenticationFailed("tag") from None

    def seal(self, plaintext: bytes, passphrase: Secret) -> bytes:
        """Derive a key under a fresh salt and encrypt ``plaintext`` with it."""
        salt = self.generate_salt()
        key = self.derive_key(passphrase, salt)
        try:
            return self.encrypt(plaintext, key, salt)
        finally:
            self.clear_bytes(bytearray(key))

    def unseal(self, blob: bytes, passphrase: Secret) -> bytes:
        """Re-derive the key from the blob's salt and decrypt it."""
        salt, _, _, _ = self.split_blob(blob)
        key = self.derive_key(passphrase, salt)
        try:
            return self.decrypt(blob, key)
        finally:
            self.clear_bytes(bytearray(key))

    @staticmethod
    def encode_blob(blob: bytes) -> bytes:
        """Base64 form used for persisted blobs."""
        return base64.b64encode(blob)

    @staticmethod
    def decode_blob(data: bytes) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise AuthenticationFailed("header") from None

    def secure_compare(self, a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return constant_time.bytes_eq(a, b)

    def clear_bytes(self, data: bytearray) -> None:
        """Attempt to clear sensitive bytes from memory."""
        if isinstance(data, bytearray):
            for i in range(len(data)):
                data[i] = 0

    def _check_key(self, key: bytes) -> None:
        if len(key) != self.KEY_SIZE:
            raise ValueError(f"Key must be {self.KEY_SIZE} bytes, got {len(key)}")
