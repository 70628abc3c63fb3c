"""
scripts/health/earthdata.py — NASA Earthdata CMR collection search check.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from scripts.health import CheckDefinition, CheckError, ErrorKind, Outcome
from scripts.health import transport

if TYPE_CHECKING:
    from config.settings import Settings

SUITE = "earthdata"


def build_checks(cfg: Settings) -> list[CheckDefinition]:
    return [
        CheckDefinition(
            SUITE,
            "Earthdata collections",
            partial(_check_collections, cfg),
            ("NASA_EARTHDATA_TOKEN", "NASA_CMR_URL"),
        ),
    ]


def _check_collections(cfg: Settings) -> Outcome:
    data = transport.get_json(
        cfg.NASA_CMR_URL,
        timeout=cfg.HEALTH_HTTP_TIMEOUT_SECONDS,
        bearer=cfg.NASA_EARTHDATA_TOKEN,
    )
    feed = data.get("feed") if isinstance(data, dict) else None
    if not isinstance(feed, dict):
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, "CMR response has no feed object", payload=data)

    entries = feed.get("entry") or []
    sample = None
    if entries:
        sample = {"title": entries[0].get("title"), "provider": entries[0].get("provider_id")}
    message = f"{len(entries)} collection(s)"
    if sample:
        message += f", e.g. {sample['title']} ({sample['provider']})"
    return message, {"collections": len(entries), "sample": sample}
