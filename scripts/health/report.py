"""
scripts/health/report.py — Report sinks for CheckResult streams.

The runner knows nothing about output. A reporter receives each result as it
is produced (on_result) and writes the summary once the run is over
(finish). TextReporter streams a terminal report; JsonReporter buffers and
emits one JSON document.
"""

from __future__ import annotations

import sys
from collections import Counter
from typing import TextIO

import orjson

from scripts.health import CheckResult, Status

SUITE_LABELS = {
    "chain": "Blockchain RPC",
    "contract": "Carbon Credit Contract",
    "cdse": "Copernicus CDSE",
    "earthdata": "NASA Earthdata",
}

BANNER = "══════════════════════════════════════════════════════════"


def summarize(results: list[CheckResult]) -> dict[str, int]:
    counts = Counter(r.status for r in results)
    return {
        "total": len(results),
        "ok": counts[Status.OK],
        "failed": counts[Status.FAILED],
        "skipped": counts[Status.SKIPPED],
    }


class TextReporter:
    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out or sys.stdout
        self._suite: str | None = None

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def start(self, suites: list[str]) -> None:
        self._print()
        self._print(f"╔{BANNER}╗")
        self._print("  External service diagnostics")
        self._print(f"  suites: {', '.join(suites)}")
        self._print(f"╚{BANNER}╝")

    def on_result(self, result: CheckResult) -> None:
        if result.suite != self._suite:
            self._suite = result.suite
            self._print(f"\n━━━ {SUITE_LABELS.get(result.suite, result.suite)} ━━━")
        self._print(str(result))

    def finish(self, results: list[CheckResult]) -> None:
        s = summarize(results)
        self._print()
        self._print(f"╔{BANNER}╗")
        self._print(
            f"  Diagnostics complete: {s['ok']} ok, {s['failed']} failed, "
            f"{s['skipped']} skipped ({s['total']} checks)"
        )
        if s["failed"]:
            self._print("  see [FAIL] lines above for details")
        elif s["skipped"] == s["total"]:
            self._print("  nothing was configured - set the variables listed in [SKIP] lines")
        else:
            self._print("  no failures")
        self._print(f"╚{BANNER}╝")


class JsonReporter:
    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out or sys.stdout
        self._suites: list[str] = []

    def start(self, suites: list[str]) -> None:
        self._suites = list(suites)

    def on_result(self, result: CheckResult) -> None:
        pass

    def finish(self, results: list[CheckResult]) -> None:
        document = {
            "suites": self._suites,
            "summary": summarize(results),
            "results": [r.to_dict() for r in results],
        }
        self.out.write(orjson.dumps(document, option=orjson.OPT_INDENT_2, default=str).decode())
        self.out.write("\n")


def make_reporter(fmt: str, out: TextIO | None = None) -> TextReporter | JsonReporter:
    if fmt == "json":
        return JsonReporter(out)
    return TextReporter(out)
