"""
scripts/health/contract.py — Carbon credit contract deployment and read checks.

The first three checks use plain account RPCs (code, nonce, balance). The
rest are eth_call reads against the ERC-1155 / AccessControl / Pausable
interface. They do not depend on the code check: when the address holds no
code they still run and fail on empty return data.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from scripts.health import CheckDefinition, Outcome
from scripts.health import rpc
from scripts.health.rpc import JsonRpcClient

if TYPE_CHECKING:
    from config.settings import Settings

SUITE = "contract"
CONTRACT = ("WEB3_PROVIDER_URL", "CARBON_CREDIT_CONTRACT_ADDRESS")
WITH_WALLET = CONTRACT + ("WEB3_WALLET_ADDRESS",)
WITH_TOKEN_ID = CONTRACT + ("CONTRACT_TOKEN_ID",)
WITH_WALLET_AND_TOKEN_ID = WITH_WALLET + ("CONTRACT_TOKEN_ID",)

ERC1155_INTERFACE_ID = "0xd9b67a26"

NO_CODE_CAUSES = [
    "contract was not deployed",
    "wrong address provided",
    "contract was self-destructed",
    "wrong network",
]


def build_checks(cfg: Settings) -> list[CheckDefinition]:
    return [
        CheckDefinition(SUITE, "Contract code", partial(_check_code, cfg), CONTRACT),
        CheckDefinition(SUITE, "Contract transaction count", partial(_check_tx_count, cfg), CONTRACT),
        CheckDefinition(SUITE, "Contract balance", partial(_check_balance, cfg), CONTRACT),
        CheckDefinition(SUITE, "Contract metadata", partial(_check_metadata, cfg), CONTRACT),
        CheckDefinition(SUITE, "ERC1155 interface", partial(_check_erc1155, cfg), CONTRACT),
        CheckDefinition(SUITE, "Access roles", partial(_check_roles, cfg), WITH_WALLET),
        CheckDefinition(SUITE, "Pause state", partial(_check_paused, cfg), CONTRACT),
        CheckDefinition(SUITE, "Token balance", partial(_check_token_balance, cfg), WITH_WALLET_AND_TOKEN_ID),
        CheckDefinition(SUITE, "Token URI", partial(_check_token_uri, cfg), WITH_TOKEN_ID),
    ]


def _client(cfg: Settings) -> JsonRpcClient:
    return JsonRpcClient(cfg.WEB3_PROVIDER_URL, cfg.HEALTH_HTTP_TIMEOUT_SECONDS)


def _check_code(cfg: Settings) -> Outcome:
    address = cfg.CARBON_CREDIT_CONTRACT_ADDRESS
    code = _client(cfg).get_code(address)
    explorer = cfg.explorer_address_url(address)
    if code == "0x":
        return "no code present", {
            "address": address,
            "code_present": False,
            "possible_causes": NO_CODE_CAUSES,
            "explorer_url": explorer,
        }
    size = (len(code) - 2) // 2
    return f"code present ({size} bytes)", {
        "address": address,
        "code_present": True,
        "bytecode_size": size,
        "explorer_url": explorer,
    }


def _check_tx_count(cfg: Settings) -> Outcome:
    count = _client(cfg).get_transaction_count(cfg.CARBON_CREDIT_CONTRACT_ADDRESS)
    return f"{count} transaction(s)", {"transaction_count": count}


def _check_balance(cfg: Settings) -> Outcome:
    balance = rpc.format_ether(_client(cfg).get_balance(cfg.CARBON_CREDIT_CONTRACT_ADDRESS))
    return f"{balance} {cfg.NATIVE_CURRENCY}", {"balance": balance, "currency": cfg.NATIVE_CURRENCY}


def _check_metadata(cfg: Settings) -> Outcome:
    client = _client(cfg)
    address = cfg.CARBON_CREDIT_CONTRACT_ADDRESS
    info = {
        "name": rpc.decode_string(client.eth_call(address, "name()")),
        "symbol": rpc.decode_string(client.eth_call(address, "symbol()")),
        "version": rpc.decode_string(client.eth_call(address, "version()")),
    }
    return f"{info['name']} ({info['symbol']}) v{info['version']}", info


def _check_erc1155(cfg: Settings) -> Outcome:
    supported = rpc.decode_bool(
        _client(cfg).eth_call(
            cfg.CARBON_CREDIT_CONTRACT_ADDRESS,
            "supportsInterface(bytes4)",
            rpc.encode_bytes4(ERC1155_INTERFACE_ID),
        )
    )
    return f"supports ERC1155: {'yes' if supported else 'no'}", {
        "interface_id": ERC1155_INTERFACE_ID,
        "supported": supported,
    }


def _check_roles(cfg: Settings) -> Outcome:
    client = _client(cfg)
    address = cfg.CARBON_CREDIT_CONTRACT_ADDRESS
    wallet = cfg.WEB3_WALLET_ADDRESS
    detail = {}
    for label, getter in (("admin", "DEFAULT_ADMIN_ROLE()"), ("minter", "MINTER_ROLE()")):
        role = rpc.decode_bytes32(client.eth_call(address, getter))
        granted = rpc.decode_bool(
            client.eth_call(
                address,
                "hasRole(bytes32,address)",
                rpc.encode_bytes32(role),
                rpc.encode_address(wallet),
            )
        )
        detail[label] = {"role": role, "granted": granted}
    summary = ", ".join(f"{k}={'yes' if v['granted'] else 'no'}" for k, v in detail.items())
    return summary, {"wallet": wallet, **detail}


def _check_paused(cfg: Settings) -> Outcome:
    paused = rpc.decode_bool(_client(cfg).eth_call(cfg.CARBON_CREDIT_CONTRACT_ADDRESS, "paused()"))
    return f"paused: {'yes' if paused else 'no'}", {"paused": paused}


def _check_token_balance(cfg: Settings) -> Outcome:
    token_id = cfg.CONTRACT_TOKEN_ID
    balance = rpc.decode_uint(
        _client(cfg).eth_call(
            cfg.CARBON_CREDIT_CONTRACT_ADDRESS,
            "balanceOf(address,uint256)",
            rpc.encode_address(cfg.WEB3_WALLET_ADDRESS),
            rpc.encode_uint(token_id),
        )
    )
    return f"token {token_id} balance {balance}", {"token_id": token_id, "balance": balance}


def _check_token_uri(cfg: Settings) -> Outcome:
    token_id = cfg.CONTRACT_TOKEN_ID
    uri = rpc.decode_string(
        _client(cfg).eth_call(cfg.CARBON_CREDIT_CONTRACT_ADDRESS, "uri(uint256)", rpc.encode_uint(token_id))
    )
    return uri or "(empty uri)", {"token_id": token_id, "uri": uri}
