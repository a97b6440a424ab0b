import string

import pyotp
import pytest

from passvault import config
from passvault.generator import (
    generate_password,
    generate_totp_secret,
    totp_now,
    totp_uri,
    verify_totp,
)


# ─── Passwords ───

def test_default_password():
    password = generate_password()
    assert len(password) == config.PASSWORD_GENERATOR_DEFAULT_LENGTH


def test_character_classes_are_respected():
    password = generate_password(64, uppercase=False, symbols=False)
    assert set(password) <= set(string.ascii_lowercase + string.digits)


def test_digits_only():
    assert generate_password(32, uppercase=False, lowercase=False, symbols=False).isdigit()


def test_exclude_similar_and_ambiguous():
    excluded = set(config.PASSWORD_GENERATOR_SIMILAR_CHARS + config.PASSWORD_GENERATOR_AMBIGUOUS_CHARS)
    for _ in range(20):
        password = generate_password(128, exclude_similar=True, exclude_ambiguous=True)
        assert not excluded & set(password)


def test_passwords_differ():
    assert generate_password(32) != generate_password(32)


@pytest.mark.parametrize("length", [config.PASSWORD_GENERATOR_MIN_LENGTH - 1,
                                    config.PASSWORD_GENERATOR_MAX_LENGTH + 1])
def test_length_bounds(length):
    with pytest.raises(ValueError):
        generate_password(length)


def test_empty_character_set():
    with pytest.raises(ValueError):
        generate_password(16, uppercase=False, lowercase=False, digits=False, symbols=False)


# ─── TOTP ───

def test_totp_secret_is_base32():
    secret = generate_totp_secret()
    assert len(secret) == 32
    assert set(secret) <= set(string.ascii_uppercase + "234567")


def test_totp_code_verifies():
    secret = generate_totp_secret()
    code = totp_now(secret)
    assert len(code) == 6
    assert verify_totp(secret, code)


def test_totp_at_fixed_time():
    secret = "JBSWY3DPEHPK3PXP"
    assert totp_now(secret, for_time=0) == pyotp.TOTP(secret).at(0)


def test_totp_uri():
    uri = totp_uri("JBSWY3DPEHPK3PXP", "a@b.com")
    assert uri.startswith("otpauth://totp/")
    assert "secret=JBSWY3DPEHPK3PXP" in uri
    assert f"issuer={config.APP_NAME}" in uri
