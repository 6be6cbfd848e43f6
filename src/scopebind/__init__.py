"""Hierarchical service registry with scoped singletons and async lifecycles.

This package lets an object become a *scope*: a registry of named service
implementations that can resolve singleton or transient instances, hand
singletons down to child scopes, and chain asynchronous calls across every
implementation of a service.

Exports:
- `Scope`: Base class granting registry, resolution and lifecycle methods.
- `make_scope`: Turns a `Scope` instance into a named scope, optionally with
  an initial service map and a parent scope.
- `Lifecycle`: Reusable serial chain of `(context, done)` steps.
- `ServiceDescriptor`, `DescriptorKind`: How a registered implementation is
  classified (factory, static object, properties-only object).
- `ResolutionError`, `ScopeNotFoundError`, `StepError`: Errors.
"""

from ._descriptor import DescriptorKind, ServiceDescriptor
from ._errors import ResolutionError, ScopeNotFoundError, StepError
from ._lifecycle import Lifecycle
from ._scope import Scope, make_scope


__all__ = [
    "DescriptorKind",
    "Lifecycle",
    "ResolutionError",
    "Scope",
    "ScopeNotFoundError",
    "ServiceDescriptor",
    "StepError",
    "make_scope",
]
