"""Unit tests for scripts.health.cdse token handling and STAC checks."""

from __future__ import annotations

from config.settings import Settings
from scripts.health import CheckError, ErrorKind, Status
from scripts.health import cdse as health_cdse
from scripts.health.runner import run_checks
from tests.fakes import FakeHttp

AUTH = "https://auth.example.org/token"
STAC = "https://stac.example.org/stac"


def _cfg(**overrides) -> Settings:
    base = {
        "CDSE_AUTH_URL": AUTH,
        "CDSE_STAC_URL": STAC,
        "CDSE_CLIENT_ID": "client",
        "CDSE_CLIENT_SECRET": "secret",
        "CDSE_COLLECTIONS": "SENTINEL-2,SENTINEL-1",
    }
    base.update(overrides)
    return Settings(**base)


def _items(item_id: str) -> dict:
    return {
        "features": [
            {"id": item_id, "properties": {"datetime": "2024-06-01T05:10:31Z", "eo:cloud_cover": 12.5}}
        ]
    }


def _routes(token=None) -> dict:
    return {
        AUTH: token if token is not None else {"access_token": "tok", "expires_in": 600, "token_type": "Bearer"},
        f"{STAC}/collections": {
            "collections": [
                {"id": "SENTINEL-2", "title": "Sentinel-2 MSI"},
                {"id": "SENTINEL-1"},
                {"id": "LANDSAT-8"},
            ]
        },
        f"{STAC}/collections/SENTINEL-2/items?limit=1": _items("S2A_MSIL2A_1"),
        f"{STAC}/collections/SENTINEL-1/items?limit=1": {"features": []},
    }


def _run(cfg, http):
    return {r.name: r for r in run_checks(health_cdse.build_checks(cfg), cfg)}


def test_healthy_cdse_run(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    results = _run(_cfg(), http)

    assert all(r.status is Status.OK for r in results.values())
    token = results["CDSE token"]
    assert token.detail == {"expires_in": 600, "token_type": "Bearer"}
    assert "tok" not in str(token.detail)

    collections = results["CDSE collections"].detail
    assert collections["total"] == 3
    assert [c["id"] for c in collections["sentinel"]] == ["SENTINEL-2", "SENTINEL-1"]
    assert collections["sentinel"][1]["title"] == "No title"
    assert collections["suggested_env"]["CDSE_SENTINEL_2_COLLECTION"] == "SENTINEL-2"

    s2 = results["CDSE items SENTINEL-2"].detail
    assert s2["items"] == 1
    assert s2["sample"] == {"id": "S2A_MSIL2A_1", "datetime": "2024-06-01T05:10:31Z", "cloud_cover": 12.5}
    assert results["CDSE items SENTINEL-1"].detail["sample"] is None


def test_bearer_token_is_sent_to_stac(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    _run(_cfg(), http)
    gets = [kwargs for method, _, kwargs in http.requests if method == "GET"]
    assert gets and all(k["bearer"] == "tok" for k in gets)


def test_form_fields_use_client_credentials(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    _run(_cfg(), http)
    _, _, kwargs = http.requests[0]
    assert kwargs["fields"] == {"grant_type": "client_credentials", "client_id": "client", "client_secret": "secret"}


def test_token_is_fetched_once_when_reused(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    _run(_cfg(CDSE_REUSE_TOKEN=True), http)
    assert http.count("POST", AUTH) == 1


def test_token_is_fetched_per_check_when_not_reused(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    _run(_cfg(CDSE_REUSE_TOKEN=False), http)
    # token check + collections + two item checks
    assert http.count("POST", AUTH) == 4


def test_token_error_fails_dependents_with_remote_payload(monkeypatch):
    payload = {"error": "unauthorized_client", "error_description": "Invalid client secret"}
    rejected = CheckError(ErrorKind.REMOTE_REJECTED, "HTTP 401 Unauthorized", hint="check creds", payload=payload)
    http = FakeHttp(_routes(token=rejected)).install(monkeypatch)
    results = _run(_cfg(), http)

    assert all(r.status is Status.FAILED for r in results.values())
    assert all(r.detail == payload for r in results.values())
    assert http.count("POST", AUTH) == 1
    assert http.count("GET", f"{STAC}/collections") == 0


def test_token_without_access_token_is_malformed(monkeypatch):
    http = FakeHttp(_routes(token={"expires_in": 600, "refresh_token": "r"})).install(monkeypatch)
    results = _run(_cfg(), http)
    token = results["CDSE token"]
    assert token.error_kind is ErrorKind.MALFORMED_RESPONSE
    assert token.detail == {"expires_in": 600, "refresh_token": "***"}


def test_collection_failure_does_not_stop_other_collections(monkeypatch):
    routes = _routes()
    routes[f"{STAC}/collections/SENTINEL-2/items?limit=1"] = CheckError(
        ErrorKind.REMOTE_REJECTED, "HTTP 404 Not Found", hint="not found"
    )
    http = FakeHttp(routes).install(monkeypatch)
    results = _run(_cfg(), http)
    assert results["CDSE items SENTINEL-2"].status is Status.FAILED
    assert results["CDSE items SENTINEL-1"].status is Status.OK


def test_no_sentinel_collections_lists_available_ids(monkeypatch):
    routes = _routes()
    routes[f"{STAC}/collections"] = {"collections": [{"id": f"C{i}"} for i in range(7)]}
    http = FakeHttp(routes).install(monkeypatch)
    detail = _run(_cfg(), http)["CDSE collections"].detail
    assert detail["sentinel"] == []
    assert detail["available"] == ["C0", "C1", "C2", "C3", "C4"]
    assert detail["more"] == 2


def test_missing_credentials_skip_every_cdse_check(monkeypatch):
    http = FakeHttp({}).install(monkeypatch)
    cfg = _cfg(CDSE_CLIENT_SECRET=None)
    results = run_checks(health_cdse.build_checks(cfg), cfg)
    assert {r.status for r in results} == {Status.SKIPPED}
    assert http.requests == []


def test_provider_replays_cached_error_without_refetch(monkeypatch):
    err = CheckError(ErrorKind.NETWORK_UNREACHABLE, "down")
    http = FakeHttp({AUTH: err}).install(monkeypatch)
    tokens = health_cdse.CdseTokenProvider(_cfg(), reuse=True)
    for _ in range(3):
        try:
            tokens.access_token()
        except CheckError as e:
            assert e is err
    assert tokens.fetch_count == 1
    assert http.count("POST", AUTH) == 1


def test_malformed_stac_url_fails_catalogue_checks_only(monkeypatch):
    http = FakeHttp(_routes()).install(monkeypatch)
    results = _run(_cfg(CDSE_STAC_URL="stac.example.org/stac"), http)

    assert results["CDSE token"].status is Status.OK
    for name in ("CDSE collections", "CDSE items SENTINEL-2", "CDSE items SENTINEL-1"):
        assert results[name].status is Status.FAILED
        assert results[name].error_kind is ErrorKind.CONFIGURATION_MISSING
        assert "CDSE_STAC_URL" in results[name].message
    assert [method for method, _, _ in http.requests] == ["POST"]
