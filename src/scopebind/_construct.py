from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ._descriptor import DescriptorKind


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._descriptor import ServiceDescriptor
    from ._scope import Scope


class Constructor:
    """Builds one instance of a descriptor against a scope.

    Never caches; singleton bookkeeping belongs to the scope.
    """

    def __init__(self, scope: Scope) -> None:
        self._scope = scope

    def construct(self, descriptor: ServiceDescriptor | None, options: Any = None) -> Any:
        if descriptor is None or descriptor.target is None:
            return None

        if descriptor.kind is DescriptorKind.FACTORY:
            factory = descriptor.target
            if descriptor.inject is not None:
                args = self._resolve_dependencies(descriptor.inject)
                if options is not None:
                    args.append(options)
                instance = factory(*args)  # type: ignore[operator]
            else:
                instance = factory(self._scope, options)  # type: ignore[operator]
            logger.debug("Constructed %r in scope %r", instance, self._scope.scope_name)
        else:
            instance = descriptor.target

        self._inject_properties(instance, descriptor.inject_properties)
        return instance

    def _resolve_dependencies(self, names: tuple[str, ...]) -> list[Any]:
        return [self._scope.require(name) for name in names]

    def _inject_properties(self, instance: Any, properties: Mapping[str, str]) -> None:
        for prop, name in properties.items():
            setattr(instance, prop, self._scope.require(name))
