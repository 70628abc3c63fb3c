"""
scripts/health/rpc.py — Minimal Ethereum JSON-RPC client for read-only checks.

Only the handful of methods the chain and contract checks call are wrapped.
Contract reads go through eth_call with fixed 4-byte selectors and 32-byte
ABI words; only the return types the checks need (uint256, bool, bytes32,
string) are decoded.
"""

from __future__ import annotations

import itertools
from typing import Any

from scripts.health import CheckError, ErrorKind
from scripts.health import transport
from scripts.health.transport import HINT_RATE_LIMIT

# keccak256(signature)[:4] for the known contract interface
SELECTORS = {
    "name()": "06fdde03",
    "symbol()": "95d89b41",
    "version()": "54fd4d50",
    "paused()": "5c975abb",
    "supportsInterface(bytes4)": "01ffc9a7",
    "hasRole(bytes32,address)": "91d14854",
    "DEFAULT_ADMIN_ROLE()": "a217fddf",
    "MINTER_ROLE()": "d5391393",
    "balanceOf(address,uint256)": "00fdd58e",
    "uri(uint256)": "0e89341c",
}

KNOWN_CHAINS = {
    1: "mainnet",
    137: "matic",
    80002: "matic-amoy",
    11155111: "sepolia",
}

RATE_LIMIT_CODES = {-32005, 429}
WORD = 64  # hex chars per 32-byte ABI word


class JsonRpcClient:
    """One endpoint, one timeout. Built per check and discarded afterwards."""

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        response = transport.post_json(self.url, request, timeout=self.timeout)
        if not isinstance(response, dict):
            raise CheckError(
                ErrorKind.MALFORMED_RESPONSE,
                f"{method}: expected a JSON-RPC object, got {type(response).__name__}",
                payload=response,
            )
        error = response.get("error")
        if error is not None:
            raise _rpc_error(method, error)
        if "result" not in response:
            raise CheckError(
                ErrorKind.MALFORMED_RESPONSE,
                f"{method}: response has neither result nor error",
                payload=response,
            )
        return response["result"]

    def quantity(self, method: str, params: list[Any] | None = None) -> int:
        return hex_to_int(self.call(method, params), method)

    def chain_id(self) -> int:
        return self.quantity("eth_chainId")

    def block_number(self) -> int:
        return self.quantity("eth_blockNumber")

    def gas_price(self) -> int:
        return self.quantity("eth_gasPrice")

    def latest_block(self) -> dict[str, Any]:
        block = self.call("eth_getBlockByNumber", ["latest", False])
        if not isinstance(block, dict):
            raise CheckError(ErrorKind.MALFORMED_RESPONSE, "eth_getBlockByNumber returned no block", payload=block)
        return block

    def get_balance(self, address: str) -> int:
        return self.quantity("eth_getBalance", [address, "latest"])

    def get_transaction_count(self, address: str) -> int:
        return self.quantity("eth_getTransactionCount", [address, "latest"])

    def get_code(self, address: str) -> str:
        code = self.call("eth_getCode", [address, "latest"])
        if not isinstance(code, str) or not code.startswith("0x"):
            raise CheckError(ErrorKind.MALFORMED_RESPONSE, "eth_getCode returned non-hex data", payload=code)
        return code

    def eth_call(self, to: str, signature: str, *args: str) -> str:
        data = "0x" + SELECTORS[signature] + "".join(args)
        result = self.call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"{signature}: non-hex return data", payload=result)
        if result == "0x":
            raise CheckError(
                ErrorKind.MALFORMED_RESPONSE,
                f"{signature}: empty return data (no contract code at address?)",
            )
        return result


def _rpc_error(method: str, error: Any) -> CheckError:
    if isinstance(error, dict):
        code = error.get("code")
        message = str(error.get("message", "unknown error"))
    else:
        code, message = None, str(error)
    if code in RATE_LIMIT_CODES or "rate limit" in message.lower():
        return CheckError(ErrorKind.RATE_LIMITED, f"{method}: {message}", hint=HINT_RATE_LIMIT, payload=error)
    return CheckError(ErrorKind.REMOTE_REJECTED, f"{method}: {message}", payload=error)


# -----------------------------------------------------------------------------
# ABI words
# -----------------------------------------------------------------------------


def encode_address(address: str) -> str:
    return address.lower().removeprefix("0x").rjust(WORD, "0")


def encode_uint(value: int) -> str:
    return format(value, "x").rjust(WORD, "0")


def encode_bytes32(value: str) -> str:
    raw = value.lower().removeprefix("0x")
    if len(raw) != WORD:
        raise ValueError(f"bytes32 value must be 32 bytes, got {len(raw) // 2}")
    return raw


def encode_bytes4(value: str) -> str:
    return value.lower().removeprefix("0x").ljust(WORD, "0")


def _words(data: str) -> str:
    return data.removeprefix("0x")


def decode_uint(data: str) -> int:
    body = _words(data)
    if len(body) < WORD:
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"expected a 32-byte word, got {len(body) // 2} bytes")
    return int(body[:WORD], 16)


def decode_bool(data: str) -> bool:
    return decode_uint(data) != 0


def decode_bytes32(data: str) -> str:
    body = _words(data)
    if len(body) < WORD:
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"expected a 32-byte word, got {len(body) // 2} bytes")
    return "0x" + body[:WORD]


def decode_string(data: str) -> str:
    body = _words(data)
    try:
        offset = int(body[:WORD], 16) * 2
        length = int(body[offset:offset + WORD], 16) * 2
        start = offset + WORD
        raw = bytes.fromhex(body[start:start + length])
    except ValueError as e:
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"could not decode ABI string: {e}") from e
    if len(raw) * 2 != length:
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, "ABI string shorter than its declared length")
    return raw.decode("utf-8", errors="replace")


# -----------------------------------------------------------------------------
# Values
# -----------------------------------------------------------------------------


def hex_to_int(value: Any, method: str = "value") -> int:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"{method}: expected a hex quantity", payload=value)
    try:
        return int(value, 16)
    except ValueError as e:
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, f"{method}: invalid hex quantity", payload=value) from e


def format_units(value: int, decimals: int) -> str:
    """Render an integer amount with a decimal point, dropping trailing zeros.

    >>> format_units(1_500_000_000_000_000_000, 18)
    '1.5'
    >>> format_units(0, 18)
    '0.0'
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def format_ether(wei: int) -> str:
    return format_units(wei, 18)


def format_gwei(wei: int) -> str:
    return format_units(wei, 9)


def network_name(chain_id: int) -> str:
    return KNOWN_CHAINS.get(chain_id, "unknown")
