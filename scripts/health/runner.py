"""
scripts/health/runner.py — Sequential check runner.

Runs CheckDefinitions strictly in declaration order. Each definition is
isolated: a malformed required setting fails it, a missing one short-circuits
it to SKIPPED, any exception it raises becomes a FAILED result, and the loop
always moves on to the next one.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable

from scripts.health import CheckDefinition, CheckError, CheckResult, ErrorKind, Status
from scripts.health.transport import classify_exception

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

HINT_INVALID = "Fix the value in .env or the environment; see .env.example for the expected format."


def missing_settings(definition: CheckDefinition, cfg: Settings) -> list[str]:
    return [name for name in definition.requires if getattr(cfg, name, None) in (None, "")]


def invalid_settings(definition: CheckDefinition, cfg: Settings) -> dict[str, str]:
    invalid = getattr(cfg, "invalid_settings", None) or {}
    return {name: invalid[name] for name in definition.requires if name in invalid}


def run_one(definition: CheckDefinition, cfg: Settings) -> CheckResult:
    invalid = invalid_settings(definition, cfg)
    if invalid:
        return CheckResult(
            definition.suite,
            definition.name,
            Status.FAILED,
            f"invalid configuration ({', '.join(invalid)})",
            detail="; ".join(invalid.values()),
            error_kind=ErrorKind.CONFIGURATION_MISSING,
            hint=HINT_INVALID,
        )

    missing = missing_settings(definition, cfg)
    if missing:
        return CheckResult(
            definition.suite,
            definition.name,
            Status.SKIPPED,
            f"not configured ({', '.join(missing)})",
            detail=f"missing configuration: {', '.join(missing)}",
            error_kind=ErrorKind.CONFIGURATION_MISSING,
        )

    started = time.monotonic()
    try:
        message, detail = definition.run()
    except Exception as exc:  # noqa: BLE001
        elapsed = (time.monotonic() - started) * 1000
        if not isinstance(exc, CheckError):
            logger.debug("check %r raised an unclassified error", definition.name, exc_info=True)
        err = classify_exception(exc)
        return CheckResult(
            definition.suite,
            definition.name,
            Status.FAILED,
            err.message,
            detail=err.payload if err.payload is not None else err.message,
            error_kind=err.kind,
            hint=err.hint,
            elapsed_ms=elapsed,
        )

    return CheckResult(
        definition.suite,
        definition.name,
        Status.OK,
        message,
        detail=detail,
        elapsed_ms=(time.monotonic() - started) * 1000,
    )


def run_checks(
    definitions: Iterable[CheckDefinition],
    cfg: Settings,
    on_result: Callable[[CheckResult], None] | None = None,
) -> list[CheckResult]:
    """Run every definition in order and return one CheckResult per definition."""
    results: list[CheckResult] = []
    for definition in definitions:
        result = run_one(definition, cfg)
        logger.info("%s / %s -> %s", result.suite, result.name, result.status.value)
        results.append(result)
        if on_result is not None:
            on_result(result)
    return results
