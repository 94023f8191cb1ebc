from decimal import Decimal

import pytest

import treasury
from treasury import TreasuryError, get_treasury_address, get_treasury_balance


TREASURY = "0x" + "B" * 40
TOKEN = "0x" + "1" * 40


class _Calls(list):
    result = None


def test_address_is_normalized(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    assert get_treasury_address() == TREASURY.lower()


def test_native_balance(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.setenv("TREASURY_RPC_URL", "http://rpc.invalid")
    monkeypatch.delenv("TREASURY_TOKEN_CONTRACT", raising=False)
    calls = _Calls()
    calls.result = hex(2_500_000_000_000_000_000)

    def _fake_rpc(url, method, params=None, timeout=12):
        calls.append((method, params))
        return calls.result

    monkeypatch.setattr(treasury, "_rpc_post", _fake_rpc)
    assert get_treasury_balance() == Decimal("2.5")
    assert calls == [("eth_getBalance", [TREASURY.lower(), "latest"])]


def test_token_balance(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.setenv("TREASURY_RPC_URL", "http://rpc.invalid")
    monkeypatch.setenv("TREASURY_TOKEN_CONTRACT", TOKEN)
    monkeypatch.setenv("TREASURY_TOKEN_DECIMALS", "6")
    calls = _Calls()
    calls.result = "0x" + format(1_234_560_000, "064x")

    def _fake_rpc(url, method, params=None, timeout=12):
        calls.append((method, params))
        return calls.result

    monkeypatch.setattr(treasury, "_rpc_post", _fake_rpc)
    assert get_treasury_balance() == Decimal("1234.56")
    [(method, params)] = calls
    assert method == "eth_call"
    assert params[0]["to"] == TOKEN
    assert params[0]["data"] == "0x70a08231" + "0" * 24 + "b" * 40


def test_not_configured_raises(monkeypatch):
    monkeypatch.delenv("TREASURY_ADDRESS", raising=False)
    with pytest.raises(TreasuryError):
        get_treasury_balance()


def test_missing_rpc_raises(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.delenv("TREASURY_RPC_URL", raising=False)
    monkeypatch.delenv("ETH_RPC_URL", raising=False)
    with pytest.raises(TreasuryError):
        get_treasury_balance()


def test_rpc_failure_is_not_zero(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.setenv("TREASURY_RPC_URL", "http://rpc.invalid")

    def _boom(url, method, params=None, timeout=12):
        raise OSError("connection refused")

    monkeypatch.setattr(treasury, "_rpc_post", _boom)
    with pytest.raises(TreasuryError):
        get_treasury_balance()


@pytest.mark.parametrize("raw", [None, "not-hex"])
def test_malformed_result_raises(monkeypatch, raw):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.setenv("TREASURY_RPC_URL", "http://rpc.invalid")
    monkeypatch.setattr(treasury, "_rpc_post", lambda *a, **kw: raw)
    with pytest.raises(TreasuryError):
        get_treasury_balance()


def test_bad_token_decimals_raises(monkeypatch):
    monkeypatch.setenv("TREASURY_ADDRESS", TREASURY)
    monkeypatch.setenv("TREASURY_RPC_URL", "http://rpc.invalid")
    monkeypatch.setenv("TREASURY_TOKEN_CONTRACT", TOKEN)
    monkeypatch.setenv("TREASURY_TOKEN_DECIMALS", "six")
    monkeypatch.setattr(treasury, "_rpc_post", lambda *a, **kw: "0x10")
    with pytest.raises(TreasuryError):
        get_treasury_balance()
