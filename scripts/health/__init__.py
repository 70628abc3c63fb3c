"""
scripts/health — Composable diagnostic check modules.

Each suite module exposes a build_checks(cfg) function that returns an
ordered list of CheckDefinition objects. scripts.health.runner executes them
one at a time and turns every outcome into a CheckResult; diagnose.py
aggregates all suites and hands the results to a report sink.

Usage:
    from scripts.health import CheckDefinition, CheckResult, Status
    from scripts.health.chain import build_checks as chain_checks
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

# (message, detail) returned by a check operation
Outcome = tuple[str, Any]


class Status(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class ErrorKind(str, Enum):
    CONFIGURATION_MISSING = "configuration-missing"
    NETWORK_UNREACHABLE = "network-unreachable"
    RATE_LIMITED = "rate-limited"
    REMOTE_REJECTED = "remote-rejected"
    MALFORMED_RESPONSE = "malformed-response"


class CheckError(Exception):
    """Classified failure raised by a check operation.

    ``payload`` carries whatever the remote side sent back (a parsed JSON
    error body, a JSON-RPC error object) so the report can show it verbatim.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        hint: str | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.hint = hint
        self.payload = payload


@dataclass(frozen=True)
class CheckDefinition:
    suite: str
    name: str
    run: Callable[[], Outcome]
    requires: tuple[str, ...] = ()


@dataclass(frozen=True)
class CheckResult:
    suite: str
    name: str
    status: Status
    message: str
    detail: Any = None
    error_kind: ErrorKind | None = None
    hint: str | None = None
    elapsed_ms: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status is Status.OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "suite": self.suite,
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "detail": self.detail,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "hint": self.hint,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }

    def __str__(self) -> str:
        label = {Status.OK: " OK ", Status.FAILED: "FAIL", Status.SKIPPED: "SKIP"}[self.status]
        line = f"  [{label}] {self.name}: {self.message}"
        if self.status is Status.FAILED:
            if self.detail is not None and str(self.detail) != self.message:
                line += f"\n         {str(self.detail)[:500]}"
            if self.hint:
                line += f"\n         hint: {self.hint}"
        return line
