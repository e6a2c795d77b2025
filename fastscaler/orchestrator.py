from __future__ import annotations

from typing import Any, Callable

import boto3
import docker
import requests
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from docker.errors import APIError, DockerException, NotFound

from .config import ServiceSpec
from .errors import ConfigError, OrchestratorReadError, OrchestratorWriteError


class Orchestrator:
    """Reads and writes the desired replica count of a (cluster, service) pair.

    Failures raise OrchestratorReadError / OrchestratorWriteError and are
    never retried here.
    """

    def get_desired_count(self, spec: ServiceSpec) -> int:
        raise NotImplementedError

    def set_desired_count(self, spec: ServiceSpec, next_count: int) -> None:
        raise NotImplementedError


def _client_error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "ClientError")


class EcsOrchestrator(Orchestrator):
    """AWS ECS services via boto3."""

    def __init__(self, region: str, timeout_s: float = 5, client: Any = None):
        self.region = region
        self.timeout_s = timeout_s
        self._fixed_client = client

    def _client(self) -> Any:
        # New client per call so nothing is held between ticks.
        if self._fixed_client is not None:
            return self._fixed_client
        cfg = Config(
            connect_timeout=self.timeout_s,
            read_timeout=self.timeout_s,
            retries={"total_max_attempts": 1},
        )
        return boto3.session.Session().client("ecs", region_name=self.region, config=cfg)

    def get_desired_count(self, spec: ServiceSpec) -> int:
        try:
            resp = self._client().describe_services(cluster=spec.cluster, services=[spec.service])
        except ClientError as e:
            code = _client_error_code(e)
            raise OrchestratorReadError(f"describe_services failed: {e}", code=code) from e
        except BotoCoreError as e:
            raise OrchestratorReadError(f"describe_services failed: {e}", code=type(e).__name__) from e

        services = resp.get("services") or []
        if not services:
            failures = resp.get("failures") or []
            reason = failures[0].get("reason", "MISSING") if failures else "MISSING"
            raise OrchestratorReadError(
                f"service {spec.service!r} not found in cluster {spec.cluster!r}", code=reason
            )
        return int(services[0]["desiredCount"])

    def set_desired_count(self, spec: ServiceSpec, next_count: int) -> None:
        try:
            self._client().update_service(
                cluster=spec.cluster,
                service=spec.service,
                desiredCount=int(next_count),
            )
        except ClientError as e:
            code = _client_error_code(e)
            raise OrchestratorWriteError(f"update_service failed: {e}", code=code) from e
        except BotoCoreError as e:
            raise OrchestratorWriteError(f"update_service failed: {e}", code=type(e).__name__) from e


def _docker_client(spec: ServiceSpec, timeout_s: float) -> docker.DockerClient:
    """Engine for a swarm "cluster": an endpoint URL, or the environment default."""
    if "://" in spec.cluster:
        return docker.DockerClient(base_url=spec.cluster, timeout=int(timeout_s))
    return docker.from_env(timeout=int(timeout_s))


class SwarmOrchestrator(Orchestrator):
    """Docker Swarm replicated services via the docker SDK."""

    def __init__(
        self,
        timeout_s: float = 5,
        client_factory: Callable[[ServiceSpec, float], Any] | None = None,
    ):
        self.timeout_s = timeout_s
        self._client_factory = client_factory or _docker_client

    def _replicas(self, service: Any) -> int:
        mode = service.attrs.get("Spec", {}).get("Mode", {})
        if "Replicated" not in mode:
            raise OrchestratorReadError(f"service {service.name!r} is not replicated", code="GlobalService")
        return int(mode["Replicated"].get("Replicas", 0))

    def get_desired_count(self, spec: ServiceSpec) -> int:
        try:
            client = self._client_factory(spec, self.timeout_s)
            try:
                return self._replicas(client.services.get(spec.service))
            finally:
                client.close()
        except NotFound as e:
            raise OrchestratorReadError(f"service {spec.service!r} not found", code="NotFound") from e
        except APIError as e:
            raise OrchestratorReadError(f"inspect service failed: {e.explanation}", code=f"APIError:{e.status_code}") from e
        except (DockerException, requests.exceptions.RequestException) as e:
            raise OrchestratorReadError(f"docker engine unavailable: {e}", code=type(e).__name__) from e

    def set_desired_count(self, spec: ServiceSpec, next_count: int) -> None:
        try:
            client = self._client_factory(spec, self.timeout_s)
            try:
                svc = client.services.get(spec.service)
                if "Replicated" not in svc.attrs.get("Spec", {}).get("Mode", {}):
                    raise OrchestratorWriteError(f"service {spec.service!r} is not replicated", code="GlobalService")
                svc.scale(int(next_count))
            finally:
                client.close()
        except NotFound as e:
            raise OrchestratorWriteError(f"service {spec.service!r} not found", code="NotFound") from e
        except APIError as e:
            raise OrchestratorWriteError(f"update service failed: {e.explanation}", code=f"APIError:{e.status_code}") from e
        except (DockerException, requests.exceptions.RequestException) as e:
            raise OrchestratorWriteError(f"docker engine unavailable: {e}", code=type(e).__name__) from e


def build_orchestrator(kind: str, region: str, timeout_s: float) -> Orchestrator:
    kind = (kind or "ecs").strip().lower()
    if kind == "ecs":
        return EcsOrchestrator(region=region, timeout_s=timeout_s)
    if kind == "swarm":
        return SwarmOrchestrator(timeout_s=timeout_s)
    raise ConfigError(f"unknown orchestrator {kind!r} (expected 'ecs' or 'swarm')")
