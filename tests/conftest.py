import pytest

from passvault import config
from passvault.blobstore import MemoryBlobStore
from passvault.crypto import CryptoManager
from passvault.session import SessionManager
from passvault.storage import VaultStore


class FakeTimer:
    """Stand-in for threading.Timer that only fires when a test says so."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        """Fire as a real timer would, i.e. not after cancel()."""
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)

    def fire_anyway(self):
        """Fire even if cancelled: a timeout racing with a rearm."""
        self.function(*self.args, **self.kwargs)


@pytest.fixture
def store():
    return MemoryBlobStore()


@pytest.fixture
def crypto():
    return CryptoManager(iterations=config.PBKDF2_MIN_ITERATIONS)


@pytest.fixture
def vault(store, crypto):
    v = VaultStore(store, crypto=crypto)
    yield v
    v.close()


@pytest.fixture
def timers():
    return []


@pytest.fixture
def timer_factory(timers):
    def factory(interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        timers.append(timer)
        return timer
    return factory


@pytest.fixture
def manager(vault, timer_factory):
    m = SessionManager(vault, timer_factory=timer_factory)
    yield m
    m.logout()
