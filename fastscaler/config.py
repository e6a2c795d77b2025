from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .errors import ConfigError

DEFAULT_SCALEOUT_THRESHOLD = 150
DEFAULT_MIN_DESIRED_COUNT = 5
DEFAULT_CHECK_INTERVAL_S = 3

_NUMERIC_DEFAULTS = {
    "scaleout_threshold": DEFAULT_SCALEOUT_THRESHOLD,
    "min_desired_count": DEFAULT_MIN_DESIRED_COUNT,
    "check_interval": DEFAULT_CHECK_INTERVAL_S,
}


class ServiceSpec(BaseModel):
    """Autoscale settings of one service. Read-only once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    status_url: str = Field(..., alias="StatusUrl", min_length=1, description="Status page to scrape")
    status_auth_name: str = Field("", alias="StatusAuthName", description="Optional auth header name")
    status_auth_value: str = Field("", alias="StatusAuthValue", repr=False)
    scaleout_threshold: int = Field(0, alias="ScaleoutThreshold", ge=0, validate_default=True)
    min_desired_count: int = Field(0, alias="MinDesiredCount", ge=0, validate_default=True)
    check_interval: int = Field(0, alias="CheckInterval", ge=0, validate_default=True, description="Seconds")
    cluster: str = Field(..., alias="EcsClusterName", min_length=1)
    service: str = Field(..., alias="EcsServiceName", min_length=1)
    webhook_url: str = Field("", alias="SlackWebhookUrl", description="Empty disables notifications")

    @field_validator("scaleout_threshold", "min_desired_count", "check_interval", mode="before")
    @classmethod
    def _null_is_unset(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("scaleout_threshold", "min_desired_count", "check_interval")
    @classmethod
    def _fill_default(cls, value: int, info: ValidationInfo) -> int:
        # 0 means "not configured".
        return value or _NUMERIC_DEFAULTS[info.field_name]


class AutoscalerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    services: list[ServiceSpec] = Field(..., alias="Services", min_length=1)
    region: str = Field("", alias="Region")


def _describe(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        problems.append(f"{loc or '<root>'}: {err.get('msg')}")
    return "; ".join(problems)


def parse_config(raw: str | bytes | dict[str, Any], default_region: str = "") -> AutoscalerConfig:
    """Validate a config document and fill defaults.

    Raises ConfigError if the document is not JSON, the service list is empty,
    or any service lacks its status URL, cluster or service name.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ConfigError(f"config is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("config must be a JSON object")

    try:
        cfg = AutoscalerConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid config: {_describe(e)}") from e

    if not cfg.region and default_region:
        cfg = cfg.model_copy(update={"region": default_region})
    return cfg


def fetch_parameter(name: str, region: str, client: Any = None) -> str:
    """Read a (possibly encrypted) SSM parameter value."""
    ssm = client or boto3.client("ssm", region_name=region)
    try:
        res = ssm.get_parameter(Name=name, WithDecryption=True)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "ClientError")
        raise ConfigError(f"cannot read parameter {name!r}: {code}") from e
    except BotoCoreError as e:
        raise ConfigError(f"cannot read parameter {name!r}: {e}") from e
    return res["Parameter"]["Value"]


def load_config(
    path: str | None = None,
    *,
    param_key: str,
    region: str,
    ssm_client: Any = None,
) -> AutoscalerConfig:
    """Load the config document from ``path`` if given, otherwise from SSM."""
    if path:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot read config file {path!r}: {e}") from e
    else:
        raw = fetch_parameter(param_key, region, client=ssm_client)
    return parse_config(raw, default_region=region)
