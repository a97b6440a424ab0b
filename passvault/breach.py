"""
Pwned Passwords range-query client.

Only the first five hex characters of the password's SHA-1 digest leave
the process. The service answers with every known suffix under that
prefix, and the match against our own suffix happens locally.
"""

import time
import hashlib
import logging
from typing import Optional, Tuple

import httpx

from . import config
from .errors import BreachCheckUnavailable

logger = logging.getLogger(__name__)


def split_digest(password: str) -> Tuple[str, str]:
    """Upper-case SHA-1 hex digest of ``password`` split into (prefix, suffix)."""
    digest = hashlib.sha1(password.encode('utf-8')).hexdigest().upper()
    return digest[:config.BREACH_PREFIX_LENGTH], digest[config.BREACH_PREFIX_LENGTH:]


def find_suffix(body: str, suffix: str) -> int:
    """Breach count for ``suffix`` in a range response, 0 when absent."""
    for line in body.splitlines():
        candidate, _, count = line.strip().partition(':')
        if candidate.upper() == suffix:
            try:
                return int(count)
            except ValueError:
                return 1
    return 0


class PwnedPasswordsClient:
    """Breach oracle backed by the Have I Been Pwned range API.

    Usage::

        client = PwnedPasswordsClient()
        client.is_compromised("hunter2")
    """

    def __init__(self, base_url: str = config.BREACH_API_URL,
                 timeout: float = config.BREACH_REQUEST_TIMEOUT_SECONDS,
                 max_retries: int = config.BREACH_MAX_RETRIES,
                 backoff: float = config.BREACH_BACKOFF_SECONDS,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url
        self.max_retries = max_retries
        self.backoff = backoff
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"Add-Padding": "true", "User-Agent": f"{config.APP_NAME}/{config.APP_VERSION}"},
        )

    def fetch_range(self, prefix: str) -> str:
        """
        Fetch the suffix list for a hash prefix.

        Raises:
            BreachCheckUnavailable: When the service cannot be reached after retries
        """
        url = f"{self.base_url}{prefix}"
        delay = self.backoff
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._client.get(url)
                response.raise_for_status()
                return response.text
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Breach range request failed (attempt {attempt}/{self.max_retries}): {e}")
                if attempt < self.max_retries and delay > 0:
                    time.sleep(delay)
                    delay *= 2
        raise BreachCheckUnavailable(str(last_error))

    def breach_count(self, password: str) -> int:
        prefix, suffix = split_digest(password)
        return find_suffix(self.fetch_range(prefix), suffix)

    def is_compromised(self, password: str) -> bool:
        return self.breach_count(password) > 0

    def close(self) -> None:
        self._client.close()
