"""Configuration helpers for the auction server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

_DEFAULT_SERVER_CONFIG = Path(__file__).resolve().parent / "server.yaml"
_DEFAULT_POOL_CONFIG = Path(__file__).resolve().parent / "pool.yaml"


@dataclass(frozen=True)
class StorageConfig:
    backend: str
    options: Mapping[str, Any]


@dataclass(frozen=True)
class RulesConfig:
    policy: str
    base_prices: Mapping[str, int]
    tier_cap: int | None
    squad_size: int | None
    floor_amount: int | None
    floor_squad_threshold: int | None
    default_budget: int | None
    lottery_seed: int | None


@dataclass(frozen=True)
class NotifierConfig:
    publishers: tuple[str, ...]
    subscriber_queue_size: int
    stream_keepalive_seconds: float


@dataclass(frozen=True)
class AdminConfig:
    username: str
    password: str | None


@dataclass(frozen=True)
class ServerConfig:
    listen: Mapping[str, Any]
    storage: StorageConfig
    rules: RulesConfig
    notifier: NotifierConfig
    admin: AdminConfig
    seed_pool: bool


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return yaml.safe_load(path.read_text()) or {}


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


@lru_cache(maxsize=1)
def get_server_config() -> ServerConfig:
    path = Path(os.getenv("AUCTION_CONFIG_PATH", _DEFAULT_SERVER_CONFIG))
    data = _load_yaml(path)
    storage = data.get("storage", {})
    rules = data.get("rules", {})
    notifier = data.get("notifier", {})
    admin = data.get("admin", {})
    return ServerConfig(
        listen=data.get("listen", {}),
        storage=StorageConfig(
            backend=str(storage.get("backend", "in_memory")),
            options=dict(storage.get("options") or {}),
        ),
        rules=RulesConfig(
            policy=str(rules.get("policy", "per_tier")),
            base_prices={str(k): int(v) for k, v in (rules.get("base_prices") or {}).items()},
            tier_cap=_optional_int(rules.get("tier_cap")),
            squad_size=_optional_int(rules.get("squad_size")),
            floor_amount=_optional_int(rules.get("floor_amount")),
            floor_squad_threshold=_optional_int(rules.get("floor_squad_threshold")),
            default_budget=_optional_int(rules.get("default_budget")),
            lottery_seed=_optional_int(rules.get("lottery_seed")),
        ),
        notifier=NotifierConfig(
            publishers=tuple(notifier.get("publishers") or ("local",)),
            subscriber_queue_size=int(notifier.get("subscriber_queue_size", 100)),
            stream_keepalive_seconds=float(notifier.get("stream_keepalive_seconds", 15)),
        ),
        admin=AdminConfig(
            username=str(admin.get("username", "admin")),
            password=os.getenv("AUCTION_ADMIN_PASSWORD", admin.get("password")),
        ),
        seed_pool=bool(data.get("seed_pool", True)),
    )


def get_pool_config_path() -> Path:
    return Path(os.getenv("AUCTION_POOL_PATH", _DEFAULT_POOL_CONFIG))
