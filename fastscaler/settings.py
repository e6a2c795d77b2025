from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Config document source
    param_key: str = os.getenv("AUTOSCALER_PARAMKEY", "/ecs/fast-autoscaler/config.json")
    region: str = os.getenv("AUTOSCALER_REGION", "ap-northeast-1")
    # When set, the config document is read from this file instead of SSM.
    config_file: str | None = os.getenv("AUTOSCALER_CONFIG_FILE")

    # Orchestrator
    orchestrator: str = os.getenv("AUTOSCALER_ORCHESTRATOR", "ecs")
    api_timeout_s: int = _env_int("AUTOSCALER_API_TIMEOUT_S", 5)

    # Notifications
    webhook_timeout_s: int = _env_int("AUTOSCALER_WEBHOOK_TIMEOUT_S", 5)

    # Logging
    log_level: str = os.getenv("AUTOSCALER_LOG_LEVEL", "DEBUG")
    json_logs: bool = _env_bool("AUTOSCALER_JSON_LOGS", True)


settings = Settings()
