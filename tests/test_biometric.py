import json
import base64

import pytest

from passvault import config
from passvault.biometric import (
    PIN_PROMPT_ENTER,
    PIN_PROMPT_SETUP,
    BiometricFallback,
    PinAuthenticator,
    PlatformAuthenticator,
)
from passvault.errors import AuthenticationFailed, BiometricFailed, BiometricUnavailable
from passvault.session import SessionManager
from passvault.state import AddEntry
from passvault.storage import vault_key

PASSPHRASE = "Ajaykanna@123"


class FakeAuthenticator(PlatformAuthenticator):

    def __init__(self, available=True):
        self.available = available
        self.handle = None
        self.fail = False

    def is_available(self):
        return self.available

    def register(self, handle):
        self.handle = handle
        return True

    def authenticate(self):
        if self.fail:
            raise OSError("sensor unplugged")
        return self.handle


class ScriptedPrompt:

    def __init__(self, *answers):
        self.answers = list(answers)
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)
        return self.answers.pop(0)


@pytest.fixture
def authenticator():
    return FakeAuthenticator()


@pytest.fixture
def fallback(authenticator, store):
    return BiometricFallback(authenticator, store)


@pytest.fixture
def bio_manager(vault, fallback, timer_factory):
    m = SessionManager(vault, biometric=fallback, timer_factory=timer_factory)
    yield m
    m.logout()


# ─── PIN authenticator ───

def test_pin_register_and_authenticate(store):
    prompt = ScriptedPrompt("4821", "4821")
    pin = PinAuthenticator(store, prompt)

    assert pin.register("h1") is True
    assert pin.authenticate() == "h1"
    assert prompt.messages == [PIN_PROMPT_SETUP, PIN_PROMPT_ENTER]


def test_pin_is_stored_hashed(store):
    PinAuthenticator(store, ScriptedPrompt("4821")).register("h1")
    raw = store.get(config.PIN_AUTH_KEY)
    assert b"4821" not in raw
    assert set(json.loads(raw)["h1"]) == {"salt", "auth_hash"}


def test_wrong_or_cancelled_pin(store):
    PinAuthenticator(store, ScriptedPrompt("4821")).register("h1")
    assert PinAuthenticator(store, ScriptedPrompt("0000")).authenticate() is None
    assert PinAuthenticator(store, ScriptedPrompt(None)).authenticate() is None


def test_pin_without_registration_does_not_prompt(store):
    prompt = ScriptedPrompt()
    assert PinAuthenticator(store, prompt).authenticate() is None
    assert prompt.messages == []


def test_cancelled_pin_setup(store):
    assert PinAuthenticator(store, ScriptedPrompt("")).register("h1") is False
    assert store.get(config.PIN_AUTH_KEY) is None


# ─── Fallback store ───

def test_unregistered_handle_is_not_vouched_for(fallback, authenticator):
    authenticator.handle = "h1"
    assert fallback.authenticate() is None
    assert fallback.register("h1") is True
    assert fallback.authenticate() == "h1"


def test_authenticator_errors_become_failures(fallback, authenticator):
    fallback.register("h1")
    authenticator.fail = True
    assert fallback.authenticate() is None


def test_remove_drops_copy_and_registration(fallback):
    fallback.register("h1")
    fallback.store_fallback("h1", b"blob")
    fallback.remove("h1")
    assert not fallback.is_registered("h1")
    assert fallback.retrieve_fallback("h1") is None


# ─── Unlock through the session manager ───

def test_enable_stores_encrypted_copy(bio_manager, vault, fallback):
    bio_manager.signup(PASSPHRASE)
    identity = bio_manager.session.identity_hash

    assert bio_manager.enable_biometric() is True
    assert fallback.retrieve_fallback(identity) == vault.read_blob(identity)


def test_fallback_follows_saves(bio_manager, vault, fallback):
    bio_manager.signup(PASSPHRASE)
    identity = bio_manager.session.identity_hash
    bio_manager.enable_biometric()

    bio_manager.dispatch(AddEntry("Gmail", "a@b.com", "abc"))
    vault.flush()

    assert fallback.retrieve_fallback(identity) == vault.read_blob(identity)


def test_unlock_restores_corrupted_primary(bio_manager, vault, store):
    bio_manager.signup(PASSPHRASE)
    identity = bio_manager.session.identity_hash
    bio_manager.enable_biometric()
    bio_manager.dispatch(AddEntry("Gmail", "a@b.com", "abc"))
    bio_manager.logout()
    store.put(vault_key(identity), base64.b64encode(b"\x00" * 80))

    snapshot = bio_manager.unlock_with_biometric(PASSPHRASE)

    assert [e.title for e in snapshot.entries] == ["Gmail"]
    assert bio_manager.is_unlocked
    assert store.get(vault_key(identity)) != base64.b64encode(b"\x00" * 80)


def test_unlock_still_needs_the_passphrase(bio_manager):
    bio_manager.signup(PASSPHRASE)
    bio_manager.enable_biometric()
    bio_manager.logout()

    with pytest.raises(AuthenticationFailed):
        bio_manager.unlock_with_biometric("Someone-Else#1")
    assert not bio_manager.is_unlocked


def test_failed_verification_requires_master_password(bio_manager, authenticator):
    bio_manager.signup(PASSPHRASE)
    bio_manager.enable_biometric()
    bio_manager.logout()
    authenticator.fail = True

    with pytest.raises(BiometricFailed):
        bio_manager.unlock_with_biometric(PASSPHRASE)
    assert bio_manager.login(PASSPHRASE) is not None


def test_unavailable_authenticator(vault, store, timer_factory):
    manager = SessionManager(vault, biometric=BiometricFallback(FakeAuthenticator(available=False), store),
                             timer_factory=timer_factory)
    with pytest.raises(BiometricUnavailable):
        manager.unlock_with_biometric(PASSPHRASE)


def test_no_authenticator_configured(manager):
    with pytest.raises(BiometricUnavailable):
        manager.unlock_with_biometric(PASSPHRASE)


def test_disable_removes_fallback(bio_manager, fallback):
    bio_manager.signup(PASSPHRASE)
    identity = bio_manager.session.identity_hash
    bio_manager.enable_biometric()

    bio_manager.disable_biometric()

    assert fallback.retrieve_fallback(identity) is None
    assert not fallback.is_registered(identity)
