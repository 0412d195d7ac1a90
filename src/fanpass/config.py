"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from fanpass.errors import ConfigurationError
from fanpass.models.config import AppConfig, AuthConfig, IssuanceConfig, StorageBackend

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "FANPASS_",
) -> AppConfig:
    """Load application configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (FANPASS_PRIVATE_KEY, etc.)
        2. TOML config file
        3. Defaults from AppConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = AppConfig()

    # ── App section ────────────────────────────────────────
    app = raw.get("app", {})
    if v := app.get("log_level"):
        cfg.log_level = _log_level(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("backend"):
        cfg.storage_backend = _backend(v)
    if "db_path" in storage:
        cfg.db_path = str(storage["db_path"])

    # ── Auth section ───────────────────────────────────────
    auth_raw = raw.get("auth", {})
    cfg.auth = AuthConfig(
        partner_id=str(auth_raw.get("partner_id", "")),
        private_key=str(auth_raw.get("private_key", "")),
        key_id=str(auth_raw.get("key_id", cfg.auth.key_id)),
        token_ttl=int(auth_raw.get("token_ttl", cfg.auth.token_ttl)),
    )

    # ── Issuance section ───────────────────────────────────
    issuance_raw = raw.get("issuance", {})
    defaults = IssuanceConfig()
    cfg.issuance = IssuanceConfig(
        api_url=str(issuance_raw.get("api_url", defaults.api_url)),
        program_id=str(issuance_raw.get("program_id", defaults.program_id)),
        issuer_did=str(issuance_raw.get("issuer_did", defaults.issuer_did)),
        timeout=int(issuance_raw.get("timeout", defaults.timeout)),
    )

    # ── Environment variable overrides (highest priority) ──
    if backend := os.environ.get(f"{env_prefix}STORAGE"):
        cfg.storage_backend = _backend(backend)
    if db_path := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db_path
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = _log_level(level)
    if partner := os.environ.get(f"{env_prefix}PARTNER_ID"):
        cfg.auth.partner_id = partner
    if key := os.environ.get(f"{env_prefix}PRIVATE_KEY"):
        cfg.auth.private_key = key
    if url := os.environ.get(f"{env_prefix}ISSUANCE_URL"):
        cfg.issuance.api_url = url

    # Expand ~ in paths
    if cfg.db_path and cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _backend(value: str) -> StorageBackend:
    try:
        return StorageBackend(str(value).lower())
    except ValueError:
        choices = ", ".join(b.value for b in StorageBackend)
        raise ConfigurationError(
            f"Unknown storage backend: {value}", details=f"expected one of {choices}",
        ) from None


def _log_level(value: str) -> str:
    level = str(value).strip().lower()
    if level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level: {value}", details=f"expected one of {', '.join(LOG_LEVELS)}",
        )
    return level
