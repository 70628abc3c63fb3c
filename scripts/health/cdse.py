"""
scripts/health/cdse.py — Copernicus Data Space Ecosystem (Sentinel) checks.

OAuth2 client-credentials token, STAC collection discovery, and a one-item
listing per configured collection.

Token reuse is explicit: all CDSE checks of one run share a
CdseTokenProvider. With CDSE_REUSE_TOKEN=true the token endpoint is hit at
most once and its outcome (token or failure) is replayed to every dependent
check. With false, each dependent check fetches a fresh token.
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from functools import partial
from typing import TYPE_CHECKING, Any

from scripts.health import CheckDefinition, CheckError, ErrorKind, Outcome
from scripts.health import transport

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

SUITE = "cdse"
CREDENTIALS = ("CDSE_CLIENT_ID", "CDSE_CLIENT_SECRET")
TOKEN_SETTINGS = CREDENTIALS + ("CDSE_AUTH_URL", "CDSE_REUSE_TOKEN")
CATALOGUE_SETTINGS = TOKEN_SETTINGS + ("CDSE_STAC_URL",)


class CdseTokenProvider:
    def __init__(self, cfg: Settings, reuse: bool = True) -> None:
        self.cfg = cfg
        self.reuse = reuse
        self.fetch_count = 0
        self._response: dict[str, Any] | None = None
        self._error: CheckError | None = None

    def token_response(self) -> dict[str, Any]:
        if self.reuse:
            if self._error is not None:
                raise self._error
            if self._response is not None:
                return self._response
        try:
            response = self._fetch()
        except CheckError as e:
            if self.reuse:
                self._error = e
            raise
        if self.reuse:
            self._response = response
        return response

    def access_token(self) -> str:
        return self.token_response()["access_token"]

    def _fetch(self) -> dict[str, Any]:
        self.fetch_count += 1
        logger.debug("requesting CDSE token (fetch #%d)", self.fetch_count)
        data = transport.post_form(
            self.cfg.CDSE_AUTH_URL,
            {
                "grant_type": "client_credentials",
                "client_id": self.cfg.CDSE_CLIENT_ID or "",
                "client_secret": self.cfg.CDSE_CLIENT_SECRET or "",
            },
            timeout=self.cfg.HEALTH_HTTP_TIMEOUT_SECONDS,
        )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise CheckError(
                ErrorKind.MALFORMED_RESPONSE,
                "token endpoint response has no access_token",
                payload=_redact(data),
            )
        return data


def build_checks(cfg: Settings, tokens: CdseTokenProvider | None = None) -> list[CheckDefinition]:
    tokens = tokens or CdseTokenProvider(cfg, reuse=cfg.CDSE_REUSE_TOKEN)
    checks = [
        CheckDefinition(SUITE, "CDSE token", partial(_check_token, tokens), TOKEN_SETTINGS),
        CheckDefinition(
            SUITE, "CDSE collections", partial(_check_collections, cfg, tokens), CATALOGUE_SETTINGS
        ),
    ]
    for collection in cfg.cdse_collection_list:
        checks.append(
            CheckDefinition(
                SUITE,
                f"CDSE items {collection}",
                partial(_check_items, cfg, tokens, collection),
                CATALOGUE_SETTINGS,
            )
        )
    return checks


def _check_token(tokens: CdseTokenProvider) -> Outcome:
    data = tokens.token_response()
    expires_in = data.get("expires_in")
    return f"access token received (expires in {expires_in}s)", {
        "expires_in": expires_in,
        "token_type": data.get("token_type"),
    }


def _check_collections(cfg: Settings, tokens: CdseTokenProvider) -> Outcome:
    data = transport.get_json(
        f"{cfg.cdse_stac_base}/collections",
        timeout=cfg.HEALTH_HTTP_TIMEOUT_SECONDS,
        bearer=tokens.access_token(),
    )
    collections = data.get("collections") if isinstance(data, dict) else None
    if not isinstance(collections, list):
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, "STAC response has no collections list", payload=data)

    sentinel = [c for c in collections if "sentinel" in str(c.get("id", "")).lower()]
    if not sentinel:
        ids = [c.get("id") for c in collections]
        return f"{len(collections)} collection(s), none Sentinel", {
            "total": len(collections),
            "sentinel": [],
            "available": ids[:5],
            "more": max(0, len(ids) - 5),
        }
    return f"{len(collections)} collection(s), {len(sentinel)} Sentinel", {
        "total": len(collections),
        "sentinel": [{"id": c["id"], "title": c.get("title") or "No title"} for c in sentinel],
        "suggested_env": {
            _env_name(c["id"]): c["id"] for c in sentinel
        },
    }


def _check_items(cfg: Settings, tokens: CdseTokenProvider, collection: str) -> Outcome:
    url = f"{cfg.cdse_stac_base}/collections/{urllib.parse.quote(collection, safe='')}/items?limit=1"
    data = transport.get_json(url, timeout=cfg.HEALTH_HTTP_TIMEOUT_SECONDS, bearer=tokens.access_token())
    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list):
        raise CheckError(ErrorKind.MALFORMED_RESPONSE, "STAC items response has no features list", payload=data)

    detail: dict[str, Any] = {"collection": collection, "items": len(features), "sample": None}
    if features:
        item = features[0]
        props = item.get("properties") or {}
        detail["sample"] = {
            "id": item.get("id"),
            "datetime": props.get("datetime"),
            "cloud_cover": props.get("eo:cloud_cover"),
        }
    return f"{len(features)} item(s)", detail


def _env_name(collection_id: str) -> str:
    return f"CDSE_{re.sub(r'[^A-Z0-9]', '_', collection_id.upper())}_COLLECTION"


def _redact(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: ("***" if "token" in k.lower() else v) for k, v in data.items()}
    return data
