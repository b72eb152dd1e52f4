from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# ACTIVE_WINDOW_MS is a fixed constant of the store and intentionally not read from env.

_TRUTHY = ("1", "true", "yes", "on")

@dataclass(slots=True)
class PresenceConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    # optional cross-instance mirror
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_namespace: str = "presence"
    mirror_queue_maxsize: int = 5_000

@dataclass(slots=True)
class WatchConfig:
    url: str = "http://localhost:8080/active-users"
    interval_s: float = 5.0
    tz_name: str = "UTC"
    timeout_s: float = 5.0
    initial_backoff_s: float = 0.5
    max_backoff_s: float = 30.0
    log_level: str = "INFO"

def _flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    return env.get(name, default).strip().lower() in _TRUTHY

def _int(env: Mapping[str, str], name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and v < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {raw!r}")
    return v

def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if v <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    return v

def config_from_env(env: Optional[Mapping[str, str]] = None) -> PresenceConfig:
    """
    Server settings from the environment (call load_dotenv() first to honour .env).
    Raises ValueError on malformed numbers.
    """
    env = os.environ if env is None else env
    port = _int(env, "PRESENCE_PORT", 8080)
    if not (0 < port < 65536):
        raise ValueError(f"PRESENCE_PORT out of range: {port}")
    return PresenceConfig(
        host=env.get("PRESENCE_HOST", "0.0.0.0"),
        port=port,
        log_level=env.get("LOG_LEVEL", "INFO"),
        redis_enabled=_flag(env, "PRESENCE_REDIS_ENABLED"),
        redis_url=env.get("REDIS_URL", "redis://localhost:6379/0"),
        redis_namespace=env.get("PRESENCE_REDIS_NAMESPACE", "presence"),
        mirror_queue_maxsize=_int(env, "PRESENCE_MIRROR_QUEUE_MAXSIZE", 5_000, minimum=1),
    )

def watch_config_from_env(env: Optional[Mapping[str, str]] = None) -> WatchConfig:
    env = os.environ if env is None else env
    return WatchConfig(
        url=env.get("PRESENCE_WATCH_URL", "http://localhost:8080/active-users"),
        interval_s=_float(env, "PRESENCE_WATCH_INTERVAL_S", 5.0),
        tz_name=env.get("PRESENCE_WATCH_TZ", "UTC"),
        timeout_s=_float(env, "PRESENCE_WATCH_TIMEOUT_S", 5.0),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )
