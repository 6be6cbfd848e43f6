from __future__ import annotations


class ResolutionError(RuntimeError):
    pass


class ScopeNotFoundError(ResolutionError):
    """A singleton's owning scope isn't reachable from the requesting scope."""

    def __init__(self, service_name: str, scope_name: str) -> None:
        msg = f"Couldn't find an instance of {service_name!r} on scope {scope_name!r}."
        super().__init__(msg)
        self.service_name = service_name
        self.scope_name = scope_name


class StepError(RuntimeError):
    """Wraps a non-exception error value reported by a lifecycle step."""

    def __init__(self, error: object) -> None:
        super().__init__(f"Lifecycle step failed: {error!r}")
        self.error = error
