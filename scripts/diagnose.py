#!/usr/bin/env python3
"""
scripts/diagnose.py — Point-in-time diagnostics for external services.

Runs each suite's checks in order through the sequential runner and prints
a report. Individual check failures never stop the run.

Suites:
  chain      Blockchain RPC: network, latest block, fee data, wallet balance
  contract   Carbon credit contract: code, nonce, balance, read calls
  cdse       Copernicus CDSE: OAuth token, STAC collections, items
  earthdata  NASA Earthdata CMR collection search

Usage:
    python3 scripts/diagnose.py                      # all suites, reads .env
    python3 scripts/diagnose.py --suite cdse --format json
    service-diagnose --strict                        # exit 1 if any check failed

Exit codes:
    0  checklist completed (failed/skipped checks included)
    1  --strict and at least one check failed
    2  configuration could not be validated

Importable (used by tests):
    from scripts.diagnose import build_definitions, run_diagnostics
    results = run_diagnostics(cfg)
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Callable

# Add project root to path so health modules and config are importable
_ROOT = pathlib.Path(__file__).parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

try:
    from config.settings import Settings, load_settings
except ImportError:
    print(
        "ERROR: pydantic-settings not installed.\n"
        "Run: pip install -e '.[test]'",
        file=sys.stderr,
    )
    sys.exit(2)

from pydantic import ValidationError  # noqa: E402

from scripts.health import CheckDefinition, CheckResult, Status  # noqa: E402
from scripts.health import cdse as health_cdse  # noqa: E402
from scripts.health import chain as health_chain  # noqa: E402
from scripts.health import contract as health_contract  # noqa: E402
from scripts.health import earthdata as health_earthdata  # noqa: E402
from scripts.health.report import make_reporter  # noqa: E402
from scripts.health.runner import run_checks  # noqa: E402

logger = logging.getLogger("diagnose")

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_CONFIG = 2

SUITES: dict[str, Callable[[Settings], list[CheckDefinition]]] = {
    "chain": health_chain.build_checks,
    "contract": health_contract.build_checks,
    "cdse": health_cdse.build_checks,
    "earthdata": health_earthdata.build_checks,
}


def build_definitions(cfg: Settings, suites: list[str] | None = None) -> list[CheckDefinition]:
    """Collect definitions for the requested suites, in canonical suite order."""
    selected = suites or list(SUITES)
    definitions: list[CheckDefinition] = []
    for name in SUITES:
        if name in selected:
            definitions.extend(SUITES[name](cfg))
    return definitions


def run_diagnostics(
    cfg: Settings | None = None,
    suites: list[str] | None = None,
    on_result: Callable[[CheckResult], None] | None = None,
) -> list[CheckResult]:
    """Build and run every selected check; return results in declaration order."""
    if cfg is None:
        cfg = load_settings()
    return run_checks(build_definitions(cfg, suites), cfg, on_result=on_result)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check blockchain RPC, Copernicus CDSE and NASA Earthdata services."
    )
    parser.add_argument(
        "--suite",
        action="append",
        choices=list(SUITES),
        help="Run only this suite (repeatable). Default: all suites.",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default=None,
        help="Report format (default: REPORT_FORMAT setting, text).",
    )
    parser.add_argument("--env-file", default=".env", help="Env file to read (default: .env).")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit 1 when any check failed (skipped checks do not count).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        cfg = load_settings(args.env_file)
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in {args.env_file} / environment", file=sys.stderr)
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"]) or "settings"
            print(f"  {field}: {err['msg']}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name, reason in cfg.invalid_settings.items():
        logger.warning("ignoring invalid %s: %s", name, reason)

    suites = [s for s in SUITES if s in (args.suite or list(SUITES))]
    reporter = make_reporter(args.format or cfg.REPORT_FORMAT)
    reporter.start(suites)
    results = run_diagnostics(cfg, suites, on_result=reporter.on_result)
    reporter.finish(results)

    if args.strict and any(r.status is Status.FAILED for r in results):
        return EXIT_CHECKS_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
