from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._scope import Scope

    ServiceName = str | Enum


class DescriptorKind(Enum):
    FACTORY = "factory"
    STATIC = "static"
    PROPERTIES_ONLY = "properties-only"


def service_key(name: ServiceName) -> str:
    """Normalize a service name; string-valued enum members map to their value."""
    key = name.value if isinstance(name, Enum) else name
    if not isinstance(key, str):
        msg = f"Service names must be strings or string-valued enum members, got {name!r}"
        raise TypeError(msg)
    return key


@dataclass(eq=False)
class ServiceDescriptor:
    """A registered implementation, classified once at registration time.

    Metadata is read from attributes of the registered object:

    - `scope`: name of the scope that owns the singleton
    - `transient`: build a new instance on every resolution
    - `is_static`: treat a callable as its own instance
    - `inject`: service names passed positionally to the constructor
    - `inject_properties`: property name -> service name, assigned after construction
    - `init`: hook called with the scope on initialization
    - `on`: event name -> handler(scope, payload), wired on initialization
    """

    target: object
    kind: DescriptorKind
    scope: str | None = None
    transient: bool = False
    inject: tuple[str, ...] | None = None
    inject_properties: Mapping[str, str] = field(default_factory=dict)
    init: Callable[[Scope], object] | None = None
    on: Mapping[str, Callable[[Scope, Any], object]] = field(default_factory=dict)

    @classmethod
    def of(cls, target: object) -> ServiceDescriptor:
        if isinstance(target, ServiceDescriptor):
            return target

        # Only string affinities count; instances often keep a `scope` attribute pointing at a Scope.
        affinity = getattr(target, "scope", None)
        if not isinstance(affinity, str):
            affinity = None

        inject = getattr(target, "inject", None)
        if not isinstance(inject, (list, tuple)):
            inject = None
        inject_properties = getattr(target, "inject_properties", None)
        if not isinstance(inject_properties, Mapping):
            inject_properties = {}

        init = getattr(target, "init", None)
        handlers = getattr(target, "on", None)

        if callable(target) and getattr(target, "is_static", False) is not True:
            kind = DescriptorKind.FACTORY
        elif inject_properties:
            kind = DescriptorKind.PROPERTIES_ONLY
        else:
            kind = DescriptorKind.STATIC

        return cls(
            target=target,
            kind=kind,
            scope=affinity,
            transient=bool(getattr(target, "transient", False)),
            inject=tuple(service_key(dep) for dep in inject) if inject is not None else None,
            inject_properties={prop: service_key(dep) for prop, dep in inject_properties.items()},
            init=init if callable(init) else None,
            on=dict(handlers) if isinstance(handlers, Mapping) else {},
        )

    @classmethod
    def static(cls, target: object) -> ServiceDescriptor:
        """Descriptor that always resolves to `target` itself, ignoring its metadata."""
        return cls(target=target, kind=DescriptorKind.STATIC)

    def is_owned_by(self, scope_name: str | None) -> bool:
        return self.scope is None or self.scope == scope_name
