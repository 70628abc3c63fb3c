"""
scripts/health/chain.py — Blockchain RPC connectivity checks.

Network identity, latest block, fee data and the configured wallet's native
balance. Every check builds its own JsonRpcClient.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from scripts.health import CheckDefinition, Outcome
from scripts.health.rpc import JsonRpcClient, format_ether, format_gwei, hex_to_int, network_name

if TYPE_CHECKING:
    from config.settings import Settings

SUITE = "chain"
RPC = ("WEB3_PROVIDER_URL",)

# ethers v6 default priority fee
DEFAULT_PRIORITY_FEE_WEI = 1_000_000_000


def build_checks(cfg: Settings) -> list[CheckDefinition]:
    return [
        CheckDefinition(SUITE, "RPC network", partial(_check_network, cfg), RPC),
        CheckDefinition(SUITE, "Latest block", partial(_check_block_number, cfg), RPC),
        CheckDefinition(SUITE, "Fee data", partial(_check_fee_data, cfg), RPC),
        CheckDefinition(
            SUITE,
            "Wallet balance",
            partial(_check_wallet_balance, cfg),
            RPC + ("WEB3_WALLET_ADDRESS",),
        ),
    ]


def _client(cfg: Settings) -> JsonRpcClient:
    return JsonRpcClient(cfg.WEB3_PROVIDER_URL, cfg.HEALTH_HTTP_TIMEOUT_SECONDS)


def _check_network(cfg: Settings) -> Outcome:
    chain_id = _client(cfg).chain_id()
    name = network_name(chain_id)
    return f"connected to {name} (chain id {chain_id})", {"chain_id": chain_id, "network": name}


def _check_block_number(cfg: Settings) -> Outcome:
    number = _client(cfg).block_number()
    return f"latest block {number}", {"block_number": number}


def _check_fee_data(cfg: Settings) -> Outcome:
    client = _client(cfg)
    gas_price = client.gas_price()
    detail: dict[str, str | None] = {
        "gas_price_gwei": format_gwei(gas_price),
        "max_fee_gwei": None,
        "max_priority_fee_gwei": None,
    }
    base_fee_raw = client.latest_block().get("baseFeePerGas")
    if base_fee_raw is not None:
        base_fee = hex_to_int(base_fee_raw, "baseFeePerGas")
        detail["base_fee_gwei"] = format_gwei(base_fee)
        detail["max_priority_fee_gwei"] = format_gwei(DEFAULT_PRIORITY_FEE_WEI)
        detail["max_fee_gwei"] = format_gwei(2 * base_fee + DEFAULT_PRIORITY_FEE_WEI)
    return f"gas price {detail['gas_price_gwei']} gwei", detail


def _check_wallet_balance(cfg: Settings) -> Outcome:
    address = cfg.WEB3_WALLET_ADDRESS
    balance = format_ether(_client(cfg).get_balance(address))
    return (
        f"{balance} {cfg.NATIVE_CURRENCY}",
        {"address": address, "balance": balance, "currency": cfg.NATIVE_CURRENCY},
    )
