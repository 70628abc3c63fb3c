"""Unit tests for scripts.health.contract deployment and read-call checks."""

from __future__ import annotations

from config.settings import Settings
from scripts.health import ErrorKind, Status
from scripts.health import contract as health_contract
from scripts.health.rpc import SELECTORS
from scripts.health.runner import run_checks
from tests.fakes import FakeRpcNode, abi_bool, abi_string, abi_word

WALLET = "0x1111111111111111111111111111111111111111"
CONTRACT = "0x851a15a57F6fE3E2390e386664C7d9fC505Ca207"
MINTER_ROLE = "0x9f2df0fed2c77648de5860a4cc508cd0818c85b8b8a1ab4ceeef8d981c8956a6"


def _cfg(**overrides) -> Settings:
    base = {
        "WEB3_PROVIDER_URL": "https://rpc.example.org",
        "WEB3_WALLET_ADDRESS": WALLET,
        "CARBON_CREDIT_CONTRACT_ADDRESS": CONTRACT,
    }
    base.update(overrides)
    return Settings(**base)


def _deployed_node(code: str = "0x6080604052") -> FakeRpcNode:
    def has_role(params):
        role_word = params[0]["data"][10:74]
        return abi_bool(role_word == MINTER_ROLE[2:])

    return FakeRpcNode(
        methods={
            "eth_getCode": code,
            "eth_getTransactionCount": "0x1",
            "eth_getBalance": "0x0",
        },
        calls={
            SELECTORS["name()"]: abi_string("Carbon Credit"),
            SELECTORS["symbol()"]: abi_string("CCT"),
            SELECTORS["version()"]: abi_string("1.0.0"),
            SELECTORS["supportsInterface(bytes4)"]: abi_bool(True),
            SELECTORS["DEFAULT_ADMIN_ROLE()"]: "0x" + abi_word(0),
            SELECTORS["MINTER_ROLE()"]: MINTER_ROLE,
            SELECTORS["hasRole(bytes32,address)"]: has_role,
            SELECTORS["paused()"]: abi_bool(False),
            SELECTORS["balanceOf(address,uint256)"]: "0x" + abi_word(5),
            SELECTORS["uri(uint256)"]: abi_string("ipfs://credits/{id}.json"),
        },
    )


def _run(cfg):
    return {r.name: r for r in run_checks(health_contract.build_checks(cfg), cfg)}


def test_deployed_contract_reports_every_read(monkeypatch):
    _deployed_node().install(monkeypatch)
    results = _run(_cfg())

    assert all(r.status is Status.OK for r in results.values()), [str(r) for r in results.values()]
    assert results["Contract code"].detail["bytecode_size"] == 5
    assert results["Contract code"].detail["explorer_url"].endswith(f"/address/{CONTRACT}")
    assert results["Contract metadata"].detail == {"name": "Carbon Credit", "symbol": "CCT", "version": "1.0.0"}
    assert results["ERC1155 interface"].detail["supported"] is True
    assert results["Access roles"].detail["admin"]["granted"] is False
    assert results["Access roles"].detail["minter"]["granted"] is True
    assert results["Pause state"].detail == {"paused": False}
    assert results["Token balance"].detail == {"token_id": 1, "balance": 5}
    assert results["Token URI"].detail["uri"] == "ipfs://credits/{id}.json"


def test_no_code_is_ok_and_dependent_checks_still_run(monkeypatch):
    node = FakeRpcNode(
        methods={"eth_getCode": "0x", "eth_getTransactionCount": "0x0", "eth_getBalance": "0x0"}
    ).install(monkeypatch)
    results = _run(_cfg())

    code = results["Contract code"]
    assert code.status is Status.OK
    assert code.message == "no code present"
    assert code.detail["code_present"] is False
    assert "wrong network" in code.detail["possible_causes"]

    for name in ("Contract metadata", "ERC1155 interface", "Access roles", "Pause state", "Token balance", "Token URI"):
        assert results[name].status is Status.FAILED, name
        assert results[name].error_kind is ErrorKind.MALFORMED_RESPONSE
    assert node.methods_called().count("eth_call") == 6


def test_no_code_without_wallet_skips_wallet_checks(monkeypatch):
    FakeRpcNode(
        methods={"eth_getCode": "0x", "eth_getTransactionCount": "0x0", "eth_getBalance": "0x0"}
    ).install(monkeypatch)
    results = _run(_cfg(WEB3_WALLET_ADDRESS=None))

    assert results["Access roles"].status is Status.SKIPPED
    assert results["Token balance"].status is Status.SKIPPED
    assert results["Pause state"].status is Status.FAILED


def test_reverted_call_is_remote_rejected(monkeypatch):
    node = _deployed_node()
    node.calls[SELECTORS["version()"]] = {"error": {"code": 3, "message": "execution reverted"}}
    node.install(monkeypatch)
    results = _run(_cfg())

    metadata = results["Contract metadata"]
    assert metadata.status is Status.FAILED
    assert metadata.error_kind is ErrorKind.REMOTE_REJECTED
    assert "execution reverted" in metadata.message
    assert results["Pause state"].status is Status.OK


def test_token_id_setting_is_encoded(monkeypatch):
    node = _deployed_node().install(monkeypatch)
    _run(_cfg(CONTRACT_TOKEN_ID=9))
    balance_calls = [
        r["params"][0]["data"]
        for r in node.requests
        if r["method"] == "eth_call" and r["params"][0]["data"][2:10] == SELECTORS["balanceOf(address,uint256)"]
    ]
    assert balance_calls[0].endswith(abi_word(9))


def test_contract_checks_skipped_without_provider():
    cfg = _cfg(WEB3_PROVIDER_URL=None)
    results = run_checks(health_contract.build_checks(cfg), cfg)
    assert {r.status for r in results} == {Status.SKIPPED}
