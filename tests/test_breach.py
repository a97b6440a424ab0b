import httpx
import pytest

from passvault.breach import PwnedPasswordsClient, find_suffix, split_digest
from passvault.errors import BreachCheckUnavailable

BASE_URL = "https://breach.test/range/"

# SHA-1("password") = 5BAA61E4C9B93F3F0682250B6CF8331B7EE68FD8
RANGE_BODY = (
    "003D68EB55068C33ACE09247EE4C639306B:3\r\n"
    "1E4C9B93F3F0682250B6CF8331B7EE68FD8:3861493\r\n"
    "1E4FBE6B9D1E8D4D5E37FB1B0B0CA3E4A10:0\r\n"
)


def _client(handler, **kwargs):
    transport = httpx.MockTransport(handler)
    return PwnedPasswordsClient(base_url=BASE_URL, backoff=0,
                                client=httpx.Client(transport=transport), **kwargs)


def test_split_digest():
    assert split_digest("password") == ("5BAA6", "1E4C9B93F3F0682250B6CF8331B7EE68FD8")


def test_find_suffix():
    assert find_suffix(RANGE_BODY, "1E4C9B93F3F0682250B6CF8331B7EE68FD8") == 3861493
    assert find_suffix(RANGE_BODY, "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF") == 0
    assert find_suffix(RANGE_BODY.lower(), "003D68EB55068C33ACE09247EE4C639306B") == 3


def test_only_the_prefix_leaves_the_process():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, text=RANGE_BODY)

    client = _client(handler)
    assert client.is_compromised("password") is True

    assert seen == [BASE_URL + "5BAA6"]
    assert "1E4C9B93" not in seen[0]


def test_unknown_password_is_clean():
    client = _client(lambda request: httpx.Response(200, text=RANGE_BODY))
    assert client.breach_count("Ajaykanna@123-not-in-body") == 0
    assert client.is_compromised("Ajaykanna@123-not-in-body") is False


def test_transient_failure_is_retried():
    responses = [httpx.Response(503), httpx.Response(200, text=RANGE_BODY)]
    client = _client(lambda request: responses.pop(0), max_retries=2)
    assert client.breach_count("password") == 3861493
    assert responses == []


def test_network_failure_reports_unavailable():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler, max_retries=2)
    with pytest.raises(BreachCheckUnavailable):
        client.is_compromised("password")
    assert len(calls) == 2


def test_error_status_reports_unavailable():
    client = _client(lambda request: httpx.Response(500), max_retries=1)
    with pytest.raises(BreachCheckUnavailable):
        client.fetch_range("5BAA6")
