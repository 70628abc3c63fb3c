"""
scripts/health/transport.py — JSON-over-HTTP helper shared by every suite.

Thin wrapper around urllib.request. Every transport failure is converted to a
CheckError with an ErrorKind so the suites never handle urllib exceptions
themselves.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from scripts.health import CheckError, ErrorKind

logger = logging.getLogger(__name__)

USER_AGENT = "service-diagnostics/0.1"

HINT_NETWORK = "network connection failed - check the endpoint URL"
HINT_RATE_LIMIT = "rate limit exceeded - try again later"
STATUS_HINTS = {
    401: "authentication failed - check credentials",
    403: "access denied - check account permissions",
    404: "not found - check URLs and collection names",
}


def _parse_body(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text[:500]


def _http_error(exc: urllib.error.HTTPError) -> CheckError:
    try:
        payload = _parse_body(exc.read())
    except OSError:
        payload = None
    if exc.code == 429:
        return CheckError(
            ErrorKind.RATE_LIMITED,
            f"HTTP 429 {exc.reason}",
            hint=HINT_RATE_LIMIT,
            payload=payload,
        )
    return CheckError(
        ErrorKind.REMOTE_REJECTED,
        f"HTTP {exc.code} {exc.reason}",
        hint=STATUS_HINTS.get(exc.code),
        payload=payload,
    )


def request_json(
    url: str,
    *,
    timeout: float,
    method: str = "GET",
    data: bytes | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """Issue one request and return the decoded JSON body."""
    all_headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    all_headers.update(headers or {})
    req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
    logger.debug("%s %s", method, url)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as e:
        raise _http_error(e) from e
    except urllib.error.URLError as e:
        raise CheckError(
            ErrorKind.NETWORK_UNREACHABLE,
            f"could not reach {_host(url)}: {e.reason}",
            hint=HINT_NETWORK,
        ) from e
    except TimeoutError as e:
        raise CheckError(
            ErrorKind.NETWORK_UNREACHABLE,
            f"timed out after {timeout}s waiting for {_host(url)}",
            hint=HINT_NETWORK,
        ) from e
    except OSError as e:
        raise CheckError(
            ErrorKind.NETWORK_UNREACHABLE,
            f"connection error: {e}",
            hint=HINT_NETWORK,
        ) from e

    try:
        return json.loads(raw)
    except ValueError as e:
        raise CheckError(
            ErrorKind.MALFORMED_RESPONSE,
            f"response from {_host(url)} is not valid JSON",
            payload=raw[:500].decode("utf-8", errors="replace"),
        ) from e


def get_json(url: str, *, timeout: float, bearer: str | None = None) -> Any:
    headers = {"Authorization": f"Bearer {bearer}"} if bearer else None
    return request_json(url, timeout=timeout, headers=headers)


def post_json(url: str, payload: Any, *, timeout: float) -> Any:
    return request_json(
        url,
        timeout=timeout,
        method="POST",
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


def post_form(url: str, fields: dict[str, str], *, timeout: float) -> Any:
    return request_json(
        url,
        timeout=timeout,
        method="POST",
        data=urllib.parse.urlencode(fields).encode("utf-8"),
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )


def classify_exception(exc: BaseException) -> CheckError:
    """Map an unclassified exception escaping a check onto the taxonomy."""
    if isinstance(exc, CheckError):
        return exc
    if isinstance(exc, OSError):
        return CheckError(ErrorKind.NETWORK_UNREACHABLE, f"connection error: {exc}", hint=HINT_NETWORK)
    if isinstance(exc, (KeyError, ValueError, TypeError, IndexError)):
        return CheckError(
            ErrorKind.MALFORMED_RESPONSE,
            f"unexpected response shape: {type(exc).__name__}: {exc}",
        )
    return CheckError(ErrorKind.MALFORMED_RESPONSE, f"unexpected error: {type(exc).__name__}: {exc}")


def _host(url: str) -> str:
    return urllib.parse.urlsplit(url).netloc or url
