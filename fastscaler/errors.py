from __future__ import annotations


class AutoscalerError(Exception):
    pass


class ConfigError(AutoscalerError):
    """Configuration is missing or invalid. Fatal at startup."""


class ProbeError(AutoscalerError):
    pass


class ProbeTransportError(ProbeError):
    pass


class ProbeParseError(ProbeError):
    pass


class OrchestratorError(AutoscalerError):
    """Remote orchestrator call failed.

    ``code`` keeps the remote error classification (e.g.
    ``ServiceNotFoundException``) so it can be logged as-is.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class OrchestratorReadError(OrchestratorError):
    pass


class OrchestratorWriteError(OrchestratorError):
    pass


class NotificationError(AutoscalerError):
    pass
