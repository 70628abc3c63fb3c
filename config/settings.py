"""
config/settings.py — Canonical configuration contract for the diagnostics.

Uses pydantic-settings to load, validate, and type-check all environment
variables the checks read (RPC endpoint, wallet and contract addresses,
CDSE client credentials, Earthdata token). Validation happens once, at
bootstrap; every check builder receives the resulting Settings object.

Settings every check depends on (timeout, log level, report format) abort
bootstrap when malformed. A malformed value that only one suite reads (an
address, an endpoint URL, the token id) is dropped instead and recorded in
`invalid_settings`, so the checks that need it fail and the rest still run.

Two usage modes:
  Production / scripts:
      cfg = load_settings()              # reads from .env + os.environ
      cfg = load_settings("env/amoy.env") # override env file path

  Tests (isolated — no env file, no os.environ bleed):
      cfg = Settings(WEB3_PROVIDER_URL="http://localhost:8545")
      # All values come exclusively from kwargs → clean, reproducible.
"""
from __future__ import annotations

import os
import re
from typing import Any, Callable, Literal, Optional

from eth_account import Account
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}

CDSE_DEFAULT_AUTH_URL = (
    "https://identity.dataspace.copernicus.eu/auth/realms/CDSE/protocol/openid-connect/token"
)
CDSE_DEFAULT_STAC_URL = "https://catalogue.dataspace.copernicus.eu/stac"
NASA_DEFAULT_CMR_URL = "https://cmr.earthdata.nasa.gov/search/collections.json"


def _http_url(v: Any) -> str:
    # The value is never echoed: RPC URLs often embed an API key in the path.
    v = str(v).strip()
    if not v.startswith(("http://", "https://")):
        scheme = v.partition("://")[0] if "://" in v else "none"
        raise ValueError(f"must be an http(s) URL (scheme: {scheme})")
    return v


def _address(v: Any) -> str:
    v = str(v).strip()
    if not ADDRESS_RE.match(v):
        raise ValueError(f"must be a 0x-prefixed 20-byte hex address, got '{v}'")
    return v


def _token_id(v: Any) -> int:
    try:
        n = int(str(v).strip())
    except ValueError:
        raise ValueError(f"must be an integer, got '{v}'") from None
    if n < 0:
        raise ValueError("must be >= 0")
    return n


def _flag(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    text = str(v).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"must be a boolean (true/false), got '{v}'")


# Settings read by a single suite. A malformed value here disables only the
# checks that require it.
SUITE_SETTINGS: dict[str, Callable[[Any], Any]] = {
    "WEB3_PROVIDER_URL": _http_url,
    "WEB3_WALLET_ADDRESS": _address,
    "CARBON_CREDIT_CONTRACT_ADDRESS": _address,
    "CONTRACT_TOKEN_ID": _token_id,
    "CDSE_AUTH_URL": _http_url,
    "CDSE_STAC_URL": _http_url,
    "CDSE_REUSE_TOKEN": _flag,
    "NASA_CMR_URL": _http_url,
}

# Non-optional suite settings: an empty value means "use the default".
DEFAULT_ON_BLANK = {
    "CONTRACT_TOKEN_ID",
    "CDSE_AUTH_URL",
    "CDSE_STAC_URL",
    "CDSE_REUSE_TOKEN",
    "NASA_CMR_URL",
}


class Settings(BaseSettings):
    # Only kwargs are read (see settings_customise_sources). load_settings()
    # is the explicit production entry point that merges .env + os.environ.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Blockchain JSON-RPC
    # -------------------------------------------------------------------------
    WEB3_PROVIDER_URL: Optional[str] = None
    WEB3_WALLET_ADDRESS: Optional[str] = None
    # Only used to derive WEB3_WALLET_ADDRESS when that is unset; never signs.
    WEB3_PRIVATE_KEY: Optional[SecretStr] = None
    CARBON_CREDIT_CONTRACT_ADDRESS: Optional[str] = "0x851a15a57F6fE3E2390e386664C7d9fC505Ca207"
    CONTRACT_TOKEN_ID: int = 1
    NATIVE_CURRENCY: str = "MATIC"
    EXPLORER_URL: str = "https://amoy.polygonscan.com"

    # -------------------------------------------------------------------------
    # Copernicus Data Space Ecosystem
    # -------------------------------------------------------------------------
    CDSE_AUTH_URL: str = CDSE_DEFAULT_AUTH_URL
    CDSE_STAC_URL: str = CDSE_DEFAULT_STAC_URL
    CDSE_CLIENT_ID: Optional[str] = None
    CDSE_CLIENT_SECRET: Optional[str] = None
    CDSE_COLLECTIONS: str = "SENTINEL-2,SENTINEL-1,SENTINEL-3,SENTINEL-5P"
    CDSE_REUSE_TOKEN: bool = True

    # -------------------------------------------------------------------------
    # NASA Earthdata
    # -------------------------------------------------------------------------
    NASA_EARTHDATA_TOKEN: Optional[str] = None
    NASA_CMR_URL: str = NASA_DEFAULT_CMR_URL

    # -------------------------------------------------------------------------
    # Runner / output
    # -------------------------------------------------------------------------
    HEALTH_HTTP_TIMEOUT_SECONDS: int = 15
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    REPORT_FORMAT: Literal["text", "json"] = "text"

    # Suite settings that were supplied but malformed: name -> reason.
    invalid_settings: dict[str, str] = Field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def cdse_collection_list(self) -> list[str]:
        return [c.strip() for c in self.CDSE_COLLECTIONS.split(",") if c.strip()]

    @property
    def cdse_stac_base(self) -> str:
        return self.CDSE_STAC_URL.rstrip("/")

    def explorer_address_url(self, address: str) -> str:
        return f"{self.EXPLORER_URL.rstrip('/')}/address/{address}"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def isolate_suite_settings(cls, data: Any) -> Any:
        """Drop malformed suite settings into `invalid_settings`.

        Also derives WEB3_WALLET_ADDRESS from WEB3_PRIVATE_KEY when only the
        key is given. An explicit wallet address always wins.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        invalid: dict[str, str] = dict(data.get("invalid_settings") or {})

        for name, check in SUITE_SETTINGS.items():
            raw = data.get(name)
            if isinstance(raw, str) and not raw.strip() and name in DEFAULT_ON_BLANK:
                del data[name]
                continue
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            try:
                data[name] = check(raw)
            except ValueError as exc:
                invalid[name] = f"{name} {exc}"
                del data[name]

        wallet = data.get("WEB3_WALLET_ADDRESS")
        key = data.get("WEB3_PRIVATE_KEY")
        if isinstance(key, SecretStr):
            key = key.get_secret_value()
        wallet_given = bool(str(wallet or "").strip()) or "WEB3_WALLET_ADDRESS" in invalid
        if not wallet_given and isinstance(key, str) and key.strip():
            try:
                data["WEB3_WALLET_ADDRESS"] = Account.from_key(key.strip()).address
            except Exception:  # noqa: BLE001 - the key itself must never reach the report
                invalid["WEB3_WALLET_ADDRESS"] = (
                    "WEB3_WALLET_ADDRESS could not be derived: "
                    "WEB3_PRIVATE_KEY is not a valid private key"
                )

        data["invalid_settings"] = invalid
        return data

    @field_validator(
        "WEB3_PROVIDER_URL",
        "WEB3_WALLET_ADDRESS",
        "WEB3_PRIVATE_KEY",
        "CARBON_CREDIT_CONTRACT_ADDRESS",
        "CDSE_CLIENT_ID",
        "CDSE_CLIENT_SECRET",
        "NASA_EARTHDATA_TOKEN",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """An exported-but-empty variable counts as missing."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("REPORT_FORMAT", mode="before")
    @classmethod
    def lower_report_format(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("HEALTH_HTTP_TIMEOUT_SECONDS")
    @classmethod
    def timeout_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("HEALTH_HTTP_TIMEOUT_SECONDS must be >= 1")
        return v


def load_settings(env_file: str = ".env") -> Settings:
    """Load and validate settings from an env file + os.environ.

    Manually parses the env file and merges with os.environ (os.environ wins),
    then passes only known Settings fields as explicit kwargs. The
    pydantic-settings dotenv and env sources are disabled so that Settings()
    stays a pure validation contract (no implicit env reads).

    A missing env file is not an error: every check whose settings are absent
    is reported as skipped.

    Raises:
        ValidationError: if a setting every check needs is malformed
            (timeout, log level, report format). Malformed suite settings
            land in `invalid_settings` instead.
    """
    file_vals: dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith("export "):
                    line = line[len("export "):]
                k, _, v = line.partition("=")
                k = k.strip()
                # Strip inline comments, then surrounding quotes
                v = re.sub(r"\s+#.*$", "", v.strip())
                if len(v) >= 2 and v[0] == v[-1] and v[0] in "'\"":
                    v = v[1:-1]
                if k:
                    file_vals[k] = v
    except FileNotFoundError:
        pass
    merged = {**file_vals, **os.environ}  # os.environ wins
    known = {k: v for k, v in merged.items() if k.isupper() and k in Settings.model_fields}
    return Settings(**known)
