"""
PassVault Password Manager core
Copyright (c) 2025

LEGAL NOTICE AND THREAT MODEL:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner. Vaults
are encrypted at rest with a key derived from the master password and are
decrypted only in memory after successful authentication.
"""

from .analyzer import SecurityAnalyzer
from .blobstore import FileBlobStore, MemoryBlobStore
from .crypto import CryptoManager
from .session import SessionManager
from .storage import VaultStore

__all__ = [
    "CryptoManager",
    "FileBlobStore",
    "MemoryBlobStore",
    "SecurityAnalyzer",
    "SessionManager",
    "VaultStore",
]
