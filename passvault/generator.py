"""
Password and TOTP seed generation.
"""

import string
import secrets
from typing import Optional

import pyotp

from . import config


def generate_password(length: int = config.PASSWORD_GENERATOR_DEFAULT_LENGTH,
                      uppercase: bool = True, lowercase: bool = True,
                      digits: bool = True, symbols: bool = True,
                      exclude_similar: bool = False, exclude_ambiguous: bool = False) -> str:
    """
    Generate a random password from the selected character classes.

    Raises:
        ValueError: If the length is out of range or no characters are selected
    """
    if not config.PASSWORD_GENERATOR_MIN_LENGTH <= length <= config.PASSWORD_GENERATOR_MAX_LENGTH:
        raise ValueError(f"Length must be between {config.PASSWORD_GENERATOR_MIN_LENGTH} "
                         f"and {config.PASSWORD_GENERATOR_MAX_LENGTH}")

    chars = ""
    if uppercase:
        chars += string.ascii_uppercase
    if lowercase:
        chars += string.ascii_lowercase
    if digits:
        chars += string.digits
    if symbols:
        chars += config.PASSWORD_GENERATOR_SYMBOLS

    if exclude_similar:
        chars = ''.join(c for c in chars if c not in config.PASSWORD_GENERATOR_SIMILAR_CHARS)
    if exclude_ambiguous:
        chars = ''.join(c for c in chars if c not in config.PASSWORD_GENERATOR_AMBIGUOUS_CHARS)

    if not chars:
        raise ValueError("Select at least one character type")

    return ''.join(secrets.choice(chars) for _ in range(length))


def generate_totp_secret() -> str:
    """Random base32 TOTP seed."""
    return pyotp.random_base32(length=32)


def totp_now(secret: str, for_time: Optional[int] = None) -> str:
    totp = pyotp.TOTP(secret)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def verify_totp(secret: str, code: str, valid_window: int = 1) -> bool:
    return pyotp.TOTP(secret).verify(code, valid_window=valid_window)


def totp_uri(secret: str, account_name: str, issuer: str = config.APP_NAME) -> str:
    """``otpauth://`` provisioning URI for authenticator apps."""
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=issuer)
