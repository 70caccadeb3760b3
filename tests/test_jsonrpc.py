"""Tests for the node-backed development wallet."""

import pytest
import requests

from conftest import ACCOUNT_A, ACCOUNT_B
from ct_api.constants import ACCOUNTS_CHANGED, CHAIN_CHANGED
from ct_api.evm.jsonrpc import PROVIDER_DISCONNECTED, JsonRpcWallet
from ct_api.exceptions import WalletRequestError


class DummyResponse:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class DummySession:
    """Answers JSON-RPC posts from a per-method table."""

    def __init__(self, results=None):
        self.results = {"eth_accounts": [ACCOUNT_A, ACCOUNT_B], "eth_chainId": "0x7a69"}
        self.results.update(results or {})
        self.posts = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        result = self.results.get(json["method"])
        if isinstance(result, (DummyResponse, Exception)):
            if isinstance(result, Exception):
                raise result
            return result
        return DummyResponse({"jsonrpc": "2.0", "id": json["id"], "result": result})

    def close(self):
        self.closed = True


def _wallet(session, **kwargs):
    return JsonRpcWallet("http://node.local:8545", session=session, request_timeout=3.0, **kwargs)


@pytest.mark.asyncio
async def test_accounts_hidden_until_authorized():
    """Test accounts hidden until authorized."""
    wallet = _wallet(DummySession())

    assert await wallet.request("eth_accounts") == []
    assert await wallet.request("eth_requestAccounts") == [ACCOUNT_A, ACCOUNT_B]
    assert await wallet.request("eth_accounts") == [ACCOUNT_A, ACCOUNT_B]


@pytest.mark.asyncio
async def test_declining_wallet_rejects_authorization():
    """Test declining wallet rejects authorization."""
    wallet = _wallet(DummySession(), approve_requests=False)

    with pytest.raises(WalletRequestError) as excinfo:
        await wallet.request("eth_requestAccounts")
    assert excinfo.value.code == 4001


@pytest.mark.asyncio
async def test_forwards_other_methods():
    """Test forwards other methods."""
    session = DummySession()
    wallet = _wallet(session)

    assert await wallet.request("eth_chainId") == "0x7a69"

    url, payload, timeout = session.posts[-1]
    assert url == "http://node.local:8545"
    assert payload["method"] == "eth_chainId"
    assert payload["params"] == []
    assert timeout == 3.0


@pytest.mark.asyncio
async def test_rpc_error_keeps_code_and_data():
    """Test rpc error keeps code and data."""
    session = DummySession(
        {
            "eth_sendTransaction": DummyResponse(
                {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "error": {"code": -32000, "message": "execution reverted", "data": "0x08c3"},
                }
            )
        }
    )
    wallet = _wallet(session)

    with pytest.raises(WalletRequestError) as excinfo:
        await wallet.request("eth_sendTransaction", [{"from": ACCOUNT_A}])
    assert excinfo.value.code == -32000
    assert excinfo.value.data == "0x08c3"


@pytest.mark.asyncio
async def test_transport_failure_is_disconnect():
    """Test transport failure is disconnect."""
    session = DummySession({"eth_chainId": requests.ConnectionError("refused")})
    wallet = _wallet(session)

    with pytest.raises(WalletRequestError) as excinfo:
        await wallet.request("eth_chainId")
    assert excinfo.value.code == PROVIDER_DISCONNECTED


@pytest.mark.asyncio
async def test_http_error_is_disconnect():
    """Test http error is disconnect."""
    session = DummySession({"eth_chainId": DummyResponse({}, status_code=502)})
    with pytest.raises(WalletRequestError) as excinfo:
        await _wallet(session).request("eth_chainId")
    assert excinfo.value.code == PROVIDER_DISCONNECTED


@pytest.mark.asyncio
async def test_invalid_json():
    """Test invalid json."""
    session = DummySession({"eth_chainId": DummyResponse(ValueError("not json"))})
    with pytest.raises(WalletRequestError):
        await _wallet(session).request("eth_chainId")


@pytest.mark.asyncio
async def test_switch_account_reorders_and_emits():
    """Test switch account reorders and emits."""
    wallet = _wallet(DummySession())
    seen = []
    wallet.on(ACCOUNTS_CHANGED, seen.append)
    await wallet.request("eth_requestAccounts")

    await wallet.switch_account(ACCOUNT_B)

    assert [[acct.lower() for acct in accounts] for accounts in seen] == [[ACCOUNT_B, ACCOUNT_A]]
    assert (await wallet.request("eth_accounts"))[0] == ACCOUNT_B


@pytest.mark.asyncio
async def test_switch_account_before_authorization_is_silent():
    """Test switch account before authorization is silent."""
    wallet = _wallet(DummySession())
    seen = []
    wallet.on(ACCOUNTS_CHANGED, seen.append)

    await wallet.switch_account(ACCOUNT_B)

    assert seen == []


def test_revoke_emits_empty_list():
    """Test revoke emits empty list."""
    wallet = _wallet(DummySession())
    seen = []
    wallet.on(ACCOUNTS_CHANGED, seen.append)

    wallet.revoke()

    assert seen == [[]]


@pytest.mark.asyncio
async def test_switch_network_emits_chain_id():
    """Test switch network emits chain id."""
    session = DummySession()
    wallet = _wallet(session)
    seen = []
    wallet.on(CHAIN_CHANGED, seen.append)
    session.results["eth_chainId"] = "0xaa36a7"

    await wallet.switch_network("http://other.local:8545")

    assert wallet.rpc_url == "http://other.local:8545"
    assert seen == ["0xaa36a7"]
    assert session.posts[-1][0] == "http://other.local:8545"


def test_listener_registration_and_close():
    """Test listener registration and close."""
    session = DummySession()
    wallet = _wallet(session)
    seen = []
    wallet.on(CHAIN_CHANGED, seen.append)
    wallet.on(CHAIN_CHANGED, seen.append)
    wallet.emit(CHAIN_CHANGED, "0x1")
    wallet.remove_listener(CHAIN_CHANGED, seen.append)
    wallet.emit(CHAIN_CHANGED, "0x2")

    wallet.close()

    assert seen == ["0x1"]
    assert session.closed is True
