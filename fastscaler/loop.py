from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable

from .alerts import notify_scaleout
from .config import ServiceSpec
from .errors import NotificationError, OrchestratorError, ProbeError
from .logs import service_logger
from .orchestrator import Orchestrator
from .probe import fetch_active_connections
from .settings import settings

GRACE_PERIOD_S = 180


class Phase(str, Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"


@dataclass
class LoopState:
    phase: Phase = Phase.RUNNING
    # time.monotonic() at which the current suspension ends
    suspended_until: float = 0.0

    @property
    def suspend_remaining_s(self) -> float:
        if self.phase is not Phase.SUSPENDED:
            return 0.0
        return max(0.0, self.suspended_until - time.monotonic())


@dataclass(frozen=True)
class ScaleDecision:
    active_connections: int
    current_count: int
    next_count: int


def next_desired_count(current: int, min_count: int) -> int:
    """Double the desired count, starting from at least ``min_count``."""
    if current < min_count:
        return min_count * 2
    return current * 2


class ServiceLoop:
    """Check loop of a single service.

    RUNNING: probe every ``interval_s``; a count above the threshold runs a
    scale-out and moves to SUSPENDED whatever its outcome.
    SUSPENDED: no probes for ``grace_period_s``, then RUNNING again.

    ``stop`` is observed at every wait; a tick in progress always finishes.
    """

    def __init__(
        self,
        spec: ServiceSpec,
        orchestrator: Orchestrator,
        *,
        probe: Callable[[ServiceSpec], int] = fetch_active_connections,
        notifier: Callable[..., bool] | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        grace_period_s: float = GRACE_PERIOD_S,
        interval_s: float | None = None,
    ):
        self.spec = spec
        self.orchestrator = orchestrator
        self.probe = probe
        self.notifier = notifier or partial(notify_scaleout, timeout_s=settings.webhook_timeout_s)
        self.log = logger or service_logger(spec)
        self.grace_period_s = grace_period_s
        self.interval_s = interval_s if interval_s is not None else spec.check_interval
        self.state = LoopState()

    def run(self, stop: threading.Event) -> None:
        self.log.info(
            "checker started (interval %ss, threshold %d)", self.interval_s, self.spec.scaleout_threshold
        )
        deadline = time.monotonic() + self.interval_s
        while not stop.wait(max(0.0, deadline - time.monotonic())):
            try:
                self.tick()
            except Exception:
                self.log.exception("tick failed")

            if self.state.phase is Phase.SUSPENDED:
                if not self._suspend(stop):
                    break
                deadline = time.monotonic() + self.interval_s
                continue

            deadline += self.interval_s
            now = time.monotonic()
            if deadline < now:
                # Overran: fire once right away, drop the rest.
                deadline = now
        self.log.info("stop timer")

    def tick(self) -> ScaleDecision | None:
        if self.state.phase is not Phase.RUNNING:
            return None

        try:
            count = self.probe(self.spec)
        except ProbeError as e:
            self.log.warning("probe failed: %s", e)
            return None
        self.log.info("active conns: %d", count)

        if count <= self.spec.scaleout_threshold:
            return None
        try:
            return self.scale_out(count)
        finally:
            self._enter_suspended()

    def scale_out(self, active_connections: int) -> ScaleDecision | None:
        try:
            current = self.orchestrator.get_desired_count(self.spec)
        except OrchestratorError as e:
            self.log.warning("get desired count failed: %s", e, extra={"extra_context": {"error_code": e.code}})
            return None

        decision = ScaleDecision(
            active_connections=active_connections,
            current_count=current,
            next_count=next_desired_count(current, self.spec.min_desired_count),
        )
        self.log.info("change desired count current:%d, next:%d", decision.current_count, decision.next_count)

        try:
            self.orchestrator.set_desired_count(self.spec, decision.next_count)
        except OrchestratorError as e:
            self.log.warning("set desired count failed: %s", e, extra={"extra_context": {"error_code": e.code}})
            return None

        try:
            sent = self.notifier(
                self.spec.webhook_url,
                self.spec.service,
                decision.active_connections,
                decision.current_count,
                decision.next_count,
            )
        except NotificationError as e:
            self.log.warning("scale-out notification failed: %s", e)
        else:
            if not sent:
                self.log.info("notification skipped, not configured")
        return decision

    def _enter_suspended(self) -> None:
        self.state.phase = Phase.SUSPENDED
        self.state.suspended_until = time.monotonic() + self.grace_period_s

    def _suspend(self, stop: threading.Event) -> bool:
        """Block for the grace period. False if stopped meanwhile."""
        self.log.info("pause timer for %d seconds", self.grace_period_s)
        stopped = stop.wait(self.state.suspend_remaining_s)
        self.state.phase = Phase.RUNNING
        if not stopped:
            self.log.info("resume timer")
        return not stopped
