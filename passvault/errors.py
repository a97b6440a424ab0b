"""
Exception hierarchy for the PassVault core.
"""


class VaultError(Exception):
    pass


class AuthenticationFailed(VaultError):
    """Wrong passphrase or corrupted ciphertext.

    The message never says which. ``reason`` is kept for diagnostics only.
    """

    MESSAGE = "Invalid master password or corrupted data"

    def __init__(self, reason: str = "tag"):
        self.reason = reason
        super().__init__(self.MESSAGE)


class NoSuchAccount(AuthenticationFailed):
    """No vault is stored for the passphrase.

    Indistinguishable from a wrong passphrase for callers that only catch
    ``AuthenticationFailed``.
    """

    def __init__(self):
        super().__init__("account")


class AccountExists(VaultError):
    def __init__(self):
        super().__init__("Account with this master password already exists")


class MalformedVault(VaultError):
    def __init__(self, message):
        message = f"Malformed vault: {message}"
        super().__init__(message)


class VaultLocked(VaultError, RuntimeError):
    def __init__(self):
        super().__init__("Vault is locked")


class BreachCheckUnavailable(VaultError):
    def __init__(self, message):
        message = f"Breach check unavailable: {message}"
        super().__init__(message)


class BiometricUnavailable(VaultError):
    def __init__(self):
        super().__init__("Biometric authentication not available")


class BiometricFailed(VaultError):
    def __init__(self, message="Biometric authentication failed, master password required"):
        super().__init__(message)
