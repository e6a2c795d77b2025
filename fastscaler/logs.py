"""Logging setup with structured JSON output and per-service context."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import ServiceSpec

NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "docker")


class JsonFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_context"):
            payload.update(record.extra_context)  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class ServiceAdapter(logging.LoggerAdapter):
    """Attach service fields to every record as ``extra_context``."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.pop("extra", None) or {})
        context = dict(self.extra or {})
        context.update(extra.pop("extra_context", {}))
        extra["extra_context"] = context
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def service_logger(spec: ServiceSpec, name: str = "fastscaler.loop") -> ServiceAdapter:
    return ServiceAdapter(logging.getLogger(name), {"service": spec.service, "cluster": spec.cluster})
