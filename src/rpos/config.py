from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional
import math
import os
import sys

from rpos.domain.errors import ValidationError

APP_NAME = "RetailPOS"

BACKENDS = ("sqlite", "postgrest")
SKU_POLICIES = ("sequential", "random")
COGS_POLICIES = ("clamp", "strict")


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class Settings:
    backend: str = "sqlite"
    postgrest_url: Optional[str] = None
    postgrest_key: Optional[str] = None
    store_timeout: float = 10.0
    sku_policy: str = "sequential"
    cogs_policy: str = "clamp"
    seed_demo: bool = False


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = APP_NAME, env: Mapping[str, str] | None = None) -> AppPaths:
    env = os.environ if env is None else env
    override = (env.get("RPOS_HOME") or "").strip()
    if override:
        base = Path(override).expanduser()
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "retail_pos.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def _choice(env: Mapping[str, str], key: str, default: str, allowed: tuple[str, ...]) -> str:
    value = (env.get(key) or default).strip().lower()
    if value not in allowed:
        raise ValidationError(f"{key} must be one of {', '.join(allowed)}. Got: {value!r}")
    return value


def _flag(env: Mapping[str, str], key: str) -> bool:
    return (env.get(key) or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    raw_timeout = (env.get("RPOS_STORE_TIMEOUT") or "10").strip()
    try:
        timeout = float(Decimal(raw_timeout))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"RPOS_STORE_TIMEOUT must be a number of seconds. Got: {raw_timeout!r}") from None
    if not math.isfinite(timeout) or timeout <= 0:
        raise ValidationError("RPOS_STORE_TIMEOUT must be a finite number > 0.")

    backend = _choice(env, "RPOS_BACKEND", "sqlite", BACKENDS)
    url = (env.get("RPOS_POSTGREST_URL") or "").strip() or None
    key = (env.get("RPOS_POSTGREST_KEY") or "").strip() or None
    if backend == "postgrest" and (not url or not key):
        raise ValidationError("RPOS_POSTGREST_URL and RPOS_POSTGREST_KEY are required for the postgrest backend.")

    return Settings(
        backend=backend,
        postgrest_url=url,
        postgrest_key=key,
        store_timeout=timeout,
        sku_policy=_choice(env, "RPOS_SKU_POLICY", "sequential", SKU_POLICIES),
        cogs_policy=_choice(env, "RPOS_COGS_POLICY", "clamp", COGS_POLICIES),
        seed_demo=_flag(env, "RPOS_SEED_DEMO"),
    )
