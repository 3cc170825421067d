"""Proxy mechanism: materializes substitutes that forward into an engine.

For each contract a subclass is generated once: every public method and
property is replaced by a forwarder that binds the call's arguments,
builds an ``Invocation`` and hands it to the substitute's engine. The
substitute is created without running the contract's ``__init__`` and is
an instance of the contract.
"""

from __future__ import annotations

import threading
from typing import Any

from understudy.contract import ContractDescriptor, OperationDescriptor
from understudy.engine import DispatchEngine, Invocation

_ENGINE_ATTR = "_understudy_engine"


def _engine_of(substitute: Any) -> DispatchEngine:
    return object.__getattribute__(substitute, _ENGINE_ATTR)


def _dispatch(substitute: Any, operation: OperationDescriptor, arguments: tuple[Any, ...]) -> Any:
    invocation = Invocation(substitute, operation, arguments)
    _engine_of(substitute).intercept(invocation)
    return invocation.return_value


def _forwarding_method(operation: OperationDescriptor) -> Any:
    def forward(self: Any, *args: Any, **kwargs: Any) -> Any:
        return _dispatch(self, operation, operation.bind(args, kwargs))

    forward.__name__ = operation.name
    forward.__qualname__ = operation.name
    forward.__doc__ = f"Forwards {operation.key} to the dispatch engine."
    return forward


def _forwarding_property(operation: OperationDescriptor) -> property:
    def fget(self: Any) -> Any:
        return _dispatch(self, operation, ())

    fset = None
    if operation.settable:

        def fset(self: Any, value: Any) -> None:
            _engine_of(self).setup_property(operation.name, value)

    return property(fget, fset, doc=f"Forwards {operation.key} to the dispatch engine.")


def _build_class(contract: ContractDescriptor) -> type:
    origin = contract.contract
    namespace: dict[str, Any] = {"__module__": origin.__module__}
    for operation in contract:
        if operation.is_property:
            namespace[operation.name] = _forwarding_property(operation)
        else:
            namespace[operation.name] = _forwarding_method(operation)

    def __repr__(self: Any) -> str:
        return f"<Substitute of {contract.name} at 0x{id(self):x}>"

    def __setattr__(self: Any, name: str, value: Any) -> None:
        attr = getattr(type(self), name, None)
        if isinstance(attr, property):
            # No setter on the contract raises AttributeError
            attr.__set__(self, value)
            return
        raise AttributeError(f"Cannot set {name!r} on a substitute of {contract.name}")

    namespace["__repr__"] = __repr__
    namespace["__setattr__"] = __setattr__

    cls = type(origin)(f"{origin.__name__}Substitute", (origin,), namespace)
    # Non-public abstract members stay unimplemented; allow instantiation anyway
    cls.__abstractmethods__ = frozenset()
    return cls


_classes: dict[ContractDescriptor, type] = {}
_classes_lock = threading.Lock()


def substitute_class(contract: ContractDescriptor) -> type:
    """Return the generated substitute class for a contract (built once)."""
    with _classes_lock:
        cls = _classes.get(contract)
        if cls is None:
            cls = _classes[contract] = _build_class(contract)
    return cls


def materialize(engine: DispatchEngine) -> Any:
    """Create a substitute honoring ``engine.contract`` and bind it to ``engine``."""
    cls = substitute_class(engine.contract)
    substitute = object.__new__(cls)
    object.__setattr__(substitute, _ENGINE_ATTR, engine)
    engine.attach(substitute)
    return substitute
