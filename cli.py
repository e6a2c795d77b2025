from __future__ import annotations

import argparse
import json
import logging
import sys

from fastscaler.config import ServiceSpec, load_config
from fastscaler.errors import ConfigError, ProbeError
from fastscaler.logs import configure_logging
from fastscaler.loop import ServiceLoop
from fastscaler.orchestrator import build_orchestrator
from fastscaler.probe import fetch_active_connections
from fastscaler.settings import settings
from fastscaler.supervisor import Supervisor, install_signal_handlers

LOGGER = logging.getLogger("fastscaler")


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _load(args: argparse.Namespace):
    return load_config(
        args.config or settings.config_file,
        param_key=settings.param_key,
        region=settings.region,
    )


def _cmd_run(args: argparse.Namespace) -> int:
    configure_logging(settings.log_level, settings.json_logs)
    try:
        cfg = _load(args)
        orchestrator = build_orchestrator(settings.orchestrator, cfg.region, settings.api_timeout_s)
    except ConfigError as e:
        LOGGER.critical("invalid config: %s", e)
        return 1

    supervisor = Supervisor(cfg.services, lambda spec: ServiceLoop(spec, orchestrator))
    install_signal_handlers(supervisor)
    supervisor.run()
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        cfg = _load(args)
    except ConfigError as e:
        _print({"valid": False, "error": str(e)})
        return 1
    services = []
    for s in cfg.services:
        d = s.model_dump(by_alias=True)
        if d.get("StatusAuthValue"):
            d["StatusAuthValue"] = "***"
        services.append(d)
    _print({"valid": True, "region": cfg.region, "services": services})
    return 0


def _cmd_probe(args: argparse.Namespace) -> int:
    # Only the status fields matter for a one-off probe.
    spec = ServiceSpec(
        status_url=args.url,
        status_auth_name=args.auth_name,
        status_auth_value=args.auth_value,
        check_interval=args.timeout,
        cluster="-",
        service="-",
    )
    try:
        count = fetch_active_connections(spec)
    except ProbeError as e:
        _print({"error": f"{type(e).__name__}: {e}"})
        return 1
    _print({"active_connections": count})
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Reactive autoscaler for container services")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_run = sub.add_parser("run", help="Run the autoscaling loops until SIGTERM")
    s_run.add_argument("--config", help="Config JSON file (default: SSM parameter AUTOSCALER_PARAMKEY)")

    s_val = sub.add_parser("validate", help="Load and validate the config, print normalized services")
    s_val.add_argument("--config", help="Config JSON file (default: SSM parameter AUTOSCALER_PARAMKEY)")

    s_probe = sub.add_parser("probe", help="Read the active connection count of a status page once")
    s_probe.add_argument("--url", required=True)
    s_probe.add_argument("--auth-name", default="")
    s_probe.add_argument("--auth-value", default="")
    s_probe.add_argument("--timeout", type=int, default=3, help="Seconds")

    args = p.parse_args(argv)

    if args.cmd == "run":
        return _cmd_run(args)
    if args.cmd == "validate":
        return _cmd_validate(args)
    if args.cmd == "probe":
        return _cmd_probe(args)
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
