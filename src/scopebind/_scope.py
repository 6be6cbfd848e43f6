from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from ._construct import Constructor
from ._descriptor import ServiceDescriptor, service_key
from ._errors import ScopeNotFoundError
from ._lifecycle import Lifecycle


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from ._descriptor import ServiceName
    from ._lifecycle import Done, Step


class Scope:
    """An object that owns a service registry and the instances resolved from it.

    Scopes form a tree through `parent_scope`. A scope starts out unscoped;
    `make_scope` (or `make_sub_scope` on a parent) names it, copies the
    service map onto it and registers it as a service under its own name.

    Subclass `Scope` to give another object the same capability. `on` and
    `emit` are a minimal listener registry and can be overridden to plug in
    a host event emitter.
    """

    scope_name: str | None = None
    parent_scope: Scope | None = None

    def __init__(self) -> None:
        self.services: dict[str, list[ServiceDescriptor]] = {}
        self.instances: dict[str, list[Any]] = {}
        self._listeners: defaultdict[str, list[Callable[[Any], object]]] = defaultdict(list)
        self._scope_initialized = False

    def __repr__(self) -> str:
        parent = self.parent_scope.scope_name if self.parent_scope is not None else None
        return f"{type(self).__name__}(name={self.scope_name!r}, parent={parent!r})"

    def on(self, event: str, handler: Callable[[Any], object]) -> None:
        self._listeners[event].append(handler)

    def emit(self, event: str, payload: Any = None) -> bool:
        handlers = list(self._listeners.get(event, ()))
        for handler in handlers:
            handler(payload)
        return bool(handlers)

    def initialize(self) -> Scope:
        """Run init hooks and wire event handlers of the services this scope owns.

        Services scoped to another scope are left to that scope. Called
        automatically when the scope is created with an initial service map.
        """
        for descriptors in list(self.services.values()):
            for descriptor in descriptors:
                if descriptor.is_owned_by(self.scope_name):
                    self._initialize_service(descriptor)
        self._scope_initialized = True
        return self

    def _initialize_service(self, descriptor: ServiceDescriptor) -> None:
        if descriptor.init is not None:
            descriptor.init(self)

        for event, handler in descriptor.on.items():
            self.on(event, _bind_handler(self, handler))

        logger.debug("Initialized %r in scope %r", descriptor.target, self.scope_name)

    def register(self, name: ServiceName, target: object) -> Scope:
        """Append an implementation for `name`.

        `target` is a class or factory, or a static object used as-is. If the
        scope is already initialized, the new service is initialized now.
        """
        key = service_key(name)
        descriptor = ServiceDescriptor.of(target)
        self.services.setdefault(key, []).append(descriptor)
        logger.debug("Registered %r as %r in scope %r", target, key, self.scope_name)

        if self._scope_initialized and descriptor.is_owned_by(self.scope_name):
            self._initialize_service(descriptor)
        return self

    def require(self, name: ServiceName, options: Any = None) -> Any:
        """Return an instance of the most recently registered implementation, or None."""
        key = service_key(name)
        descriptors = self.services.get(key)
        if not descriptors:
            return None
        return self._resolve(key, len(descriptors) - 1, options)

    def get_services(self, name: ServiceName, options: Any = None) -> list[Any]:
        """Return instances of every implementation of `name`, in registration order.

        Implementations must be registered after the services they depend on.
        """
        key = service_key(name)
        return [self._resolve(key, index, options) for index in range(len(self.services.get(key, ())))]

    def _resolve(self, key: str, index: int, options: Any) -> Any:
        descriptor = self.services[key][index]
        if descriptor.transient:
            return Constructor(self).construct(descriptor, options)
        return _get_singleton(self, key, index, options)

    def call_service(self, name: ServiceName, method: str, options: Any, done: Done) -> Scope:
        """Call `method(options, next)` on every implementation of `name`, one at a time.

        Implementations without the method are skipped. `done` receives the
        first error, or nothing once all calls have completed.
        """
        self._service_calls(name, method)(options, done)
        return self

    async def acall_service(self, name: ServiceName, method: str, options: Any = None) -> None:
        await self._service_calls(name, method).run_async(options)

    def _service_calls(self, name: ServiceName, method: str) -> Lifecycle:
        return Lifecycle(_methods(self.get_services(name), method, name))

    def lifecycle(self, *steps: ServiceName | Step) -> Lifecycle:
        """Build a reusable lifecycle from service/method name pairs and functions.

        Example:
          run = scope.lifecycle(
              "service1", "method_a",
              lambda context, done: done(),
              "service2", "method_b",
          )
          run(context, done)

        Service implementations are resolved once, here; each pair becomes one
        step per implementation that has the method.
        """
        built: list[Step] = []
        args = iter(steps)
        for item in args:
            if callable(item):
                built.append(item)
                continue

            method = next(args, None)
            if not isinstance(method, str):
                msg = f"Expected a method name after service {item!r}, got {method!r}"
                raise TypeError(msg)
            built.extend(_methods(self.get_services(item), method, item))

        logger.debug("Built lifecycle of %d steps in scope %r", len(built), self.scope_name)
        return Lifecycle(built)

    def make_sub_scope(self, name: ServiceName, target: Scope | None = None) -> Scope:
        """Turn `target` (a new Scope by default) into a child scope of this one."""
        return make_scope(name, target, self.services, self)


def make_scope(
    name: ServiceName,
    target: Scope | None = None,
    services: Mapping[ServiceName, Iterable[object]] | None = None,
    parent: Scope | None = None,
) -> Scope:
    """Make `target` a scope named `name`.

    The service map is copied, so later registrations on `target` and on the
    scope the services came from don't affect each other. When `services` is
    given, the new scope is initialized right away. Scoping an object twice
    leaves it unchanged.
    """
    if target is None:
        target = Scope()
    elif not isinstance(target, Scope):
        msg = f"Only Scope instances can be scoped, got {type(target).__name__}"
        raise TypeError(msg)

    if target.scope_name is not None:
        return target

    key = service_key(name)
    if services is not None:
        target.services = {
            service_key(service): [ServiceDescriptor.of(impl) for impl in impls]
            for service, impls in services.items()
        }
    target.services[key] = [ServiceDescriptor.static(target)]
    target.scope_name = key
    target.parent_scope = parent
    target.instances = {}
    logger.debug("Created scope %r (parent %r)", key, parent.scope_name if parent is not None else None)

    if services is not None:
        target.initialize()
    return target


def _get_singleton(scope: Scope, name: str, index: int, options: Any) -> Any:
    descriptors = scope.services[name]
    instances = _slots(scope, name)

    instance = instances[index]
    if instance is not None:
        return instance

    descriptor = descriptors[index]
    if not descriptor.is_owned_by(scope.scope_name):
        owner = scope.parent_scope
        while owner is not None and owner.scope_name != descriptor.scope:
            owner = owner.parent_scope

        owner_index = _index_of(owner.services.get(name, ()), descriptor) if owner is not None else None
        if owner is None or owner_index is None:
            raise ScopeNotFoundError(name, descriptor.scope)  # type: ignore[arg-type]

        instance = _get_singleton(owner, name, owner_index, options)
        logger.debug("Cached %r from scope %r in scope %r", name, owner.scope_name, scope.scope_name)
        instances[index] = instance
        return instance

    instance = Constructor(scope).construct(descriptor, options)
    instances[index] = instance
    return instance


def _slots(scope: Scope, name: str) -> list[Any]:
    instances = scope.instances.setdefault(name, [])
    missing = len(scope.services[name]) - len(instances)
    if missing > 0:
        instances.extend([None] * missing)
    return instances


def _index_of(descriptors: Iterable[ServiceDescriptor], descriptor: ServiceDescriptor) -> int | None:
    for index, candidate in enumerate(descriptors):
        if candidate.target is descriptor.target:
            return index
    return None


def _methods(instances: Iterable[Any], method: str, name: ServiceName) -> list[Step]:
    steps: list[Step] = []
    for instance in instances:
        bound = getattr(instance, method, None)
        if callable(bound):
            steps.append(bound)
        else:
            logger.debug("Skipping %r: %r has no method %r", name, instance, method)
    return steps


def _bind_handler(scope: Scope, handler: Callable[[Scope, Any], object]) -> Callable[[Any], object]:
    def handle_event(payload: Any) -> object:
        return handler(scope, payload)

    return handle_event


