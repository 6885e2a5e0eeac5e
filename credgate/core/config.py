from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_CREDENTIAL_TYPE = "XRPLCommunityExamCertification"


def _getenv(name: str, default: str) -> str:
    # The only place the process environment is read.
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("", "0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_accounts(raw: str) -> dict[str, str]:
    """Parse LEDGER_ACCOUNTS: comma-separated name=seed pairs."""
    accounts: dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, seed = item.partition("=")
        name, seed = name.strip(), seed.strip()
        if not sep or not name or not seed:
            # Never echo the value: it carries secrets.
            raise ValueError("LEDGER_ACCOUNTS entries must look like name=seed")
        if name in accounts:
            raise ValueError(f"LEDGER_ACCOUNTS names account {name!r} twice")
        accounts[name] = seed
    return accounts


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once at startup.

    Components receive the values they need through their constructors;
    nothing below the composition root reads the environment.
    """

    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    ledger_url: str | None
    ledger_timeout: float = 30.0
    accounts: dict[str, str] = field(default_factory=dict, repr=False)
    credential_type: str = DEFAULT_CREDENTIAL_TYPE
    jwt_public_key: str | None = field(default=None, repr=False)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("LEDGER_TIMEOUT", "30")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        ledger_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"LEDGER_TIMEOUT must be a number of seconds (got {timeout_raw!r})"
        ) from None
    if ledger_timeout <= 0:
        raise ValueError(f"LEDGER_TIMEOUT must be positive (got {timeout_raw!r})")

    ledger_url = _getenv("LEDGER_URL", "") or None
    if ledger_url and not ledger_url.startswith(
        ("ws://", "wss://", "http://", "https://")
    ):
        raise ValueError(
            f"LEDGER_URL must be a ws(s):// or http(s):// URL (got {ledger_url!r})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        ledger_url=ledger_url,
        ledger_timeout=ledger_timeout,
        accounts=_parse_accounts(_getenv("LEDGER_ACCOUNTS", "")),
        credential_type=_getenv("CREDENTIAL_TYPE", DEFAULT_CREDENTIAL_TYPE)
        or DEFAULT_CREDENTIAL_TYPE,
        jwt_public_key=_getenv("JWT_PUBLIC_KEY", "") or None,
    )


# Module-level singleton read by the composition root (main.py) only.
SETTINGS = load_settings()
