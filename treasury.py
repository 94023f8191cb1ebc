"""Treasury balance oracle.

Reads the reward pool balance over JSON-RPC (no web3.py). With
TREASURY_TOKEN_CONTRACT set the balance is the ERC-20 balanceOf the treasury,
otherwise the native coin balance.

Environment:
- TREASURY_ADDRESS
- TREASURY_RPC_URL (falls back to ETH_RPC_URL)
- TREASURY_TOKEN_CONTRACT (optional)
- TREASURY_TOKEN_DECIMALS (default 18)
"""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from urllib import request as urlrequest

logger = logging.getLogger(__name__)

# balanceOf(address) method id
BALANCE_OF_SELECTOR = "70a08231"


class TreasuryError(RuntimeError):
    pass


def _rpc_post(url: str, method: str, params=None, timeout=12):
    params = params or []
    payload = json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": params}).encode("utf-8")
    req = urlrequest.Request(url, data=payload, headers={"Content-Type": "application/json"})
    with urlrequest.urlopen(req, timeout=timeout) as resp:
        data = json.loads(resp.read().decode("utf-8"))
    if "error" in data:
        raise RuntimeError(data["error"])
    return data.get("result")


def _hex_to_int(x) -> int:
    if x is None:
        raise TreasuryError("RPC returned no result")
    if x in ("0x", "0X"):
        return 0
    return int(x, 16)


def _normalize_addr(a: str) -> str:
    return (a or "").strip().lower()


def get_treasury_address() -> str:
    return _normalize_addr(os.getenv("TREASURY_ADDRESS", ""))


def _rpc_url() -> str:
    return (os.getenv("TREASURY_RPC_URL") or os.getenv("ETH_RPC_URL") or "").strip()


def _balance_of_call(contract: str, holder: str) -> dict:
    word = holder[2:].rjust(64, "0")
    return {"to": contract, "data": "0x" + BALANCE_OF_SELECTOR + word}


def get_treasury_balance() -> Decimal:
    """Current treasury balance in whole token units.

    Raises TreasuryError on any failure. A failed lookup must never be
    mistaken for an empty treasury.
    """
    address = get_treasury_address()
    rpc = _rpc_url()
    if not address:
        raise TreasuryError("TREASURY_ADDRESS not configured")
    if not rpc:
        raise TreasuryError("TREASURY_RPC_URL not configured")

    contract = _normalize_addr(os.getenv("TREASURY_TOKEN_CONTRACT", ""))

    try:
        decimals = int(os.getenv("TREASURY_TOKEN_DECIMALS", "18"))
        if contract:
            raw = _rpc_post(rpc, "eth_call", [_balance_of_call(contract, address), "latest"])
        else:
            raw = _rpc_post(rpc, "eth_getBalance", [address, "latest"])
        units = _hex_to_int(raw)
    except TreasuryError:
        raise
    except Exception as e:
        logger.error("Treasury balance lookup failed: %s", e)
        raise TreasuryError(f"treasury balance lookup failed: {e}") from e

    return Decimal(units) / (Decimal(10) ** decimals)
