"""Structural descriptors for substitute contracts.

A contract is any class (ABC, ``typing.Protocol`` or plain class) or a
parameterized generic alias of one. ``describe_contract`` walks it once,
records every public operation with its parameters, return shape and
signature key, and caches the result.

Parameter kind markers:
    ""     positional-or-keyword / positional-only
    "*"    var-positional
    "kw:"  keyword-only
    "**"   var-keyword

Class-level type variables are replaced by the alias arguments, so
``Repository[User]`` and ``Repository[Order]`` produce distinct keys.
Type variables left over after substitution are the operation's generic
arguments.
"""

from __future__ import annotations

import abc
import inspect
import logging
import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from understudy.errors import ConfigurationError
from understudy.returns import ReturnDescriptor, describe_return
from understudy.signature import render_type, signature_of

logger = logging.getLogger(__name__)

_IGNORED_BASES = frozenset({object, typing.Generic, typing.Protocol, abc.ABC})


class OperationKind(str, Enum):
    """Whether an operation is a method call or a property read."""

    METHOD = "method"
    PROPERTY = "property"


class ParameterKind(str, Enum):
    """Kind marker rendered in front of a parameter's type tag."""

    POSITIONAL = ""
    VAR_POSITIONAL = "*"
    KEYWORD_ONLY = "kw:"
    VAR_KEYWORD = "**"


_KIND_BY_INSPECT = {
    inspect.Parameter.POSITIONAL_ONLY: ParameterKind.POSITIONAL,
    inspect.Parameter.POSITIONAL_OR_KEYWORD: ParameterKind.POSITIONAL,
    inspect.Parameter.VAR_POSITIONAL: ParameterKind.VAR_POSITIONAL,
    inspect.Parameter.KEYWORD_ONLY: ParameterKind.KEYWORD_ONLY,
    inspect.Parameter.VAR_KEYWORD: ParameterKind.VAR_KEYWORD,
}


@dataclass(frozen=True)
class ParameterDescriptor:
    """One declared parameter of an operation."""

    name: str
    annotation: Any
    kind: ParameterKind = ParameterKind.POSITIONAL

    @property
    def type_tag(self) -> str:
        return f"{self.kind.value}{render_type(self.annotation)}"


@dataclass(frozen=True)
class OperationDescriptor:
    """A contract operation, described from static information only.

    Attributes:
        name: Attribute name on the contract.
        kind: Method or property.
        parameters: Declared parameters, ``self`` excluded.
        returns: Declared return shape.
        generic_args: Names of function-scoped type variables.
        settable: For properties, whether the contract declares a setter.
        key: Canonical signature key, filled in on construction.
    """

    name: str
    kind: OperationKind
    parameters: tuple[ParameterDescriptor, ...] = ()
    returns: ReturnDescriptor = field(default_factory=lambda: describe_return(Any))
    generic_args: tuple[str, ...] = ()
    settable: bool = False
    call_signature: inspect.Signature | None = field(default=None, compare=False, repr=False)
    key: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", signature_of(self))

    @property
    def is_property(self) -> bool:
        return self.kind is OperationKind.PROPERTY

    @property
    def returns_awaitable(self) -> bool:
        return self.returns.is_deferred

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    def bind(self, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> tuple[Any, ...]:
        """Bind call arguments to parameter order, applying defaults.

        Raises:
            TypeError: If the arguments do not fit the declared parameters.
        """
        if self.call_signature is None:
            if args or kwargs:
                raise TypeError(f"{self.name}() takes no arguments")
            return ()
        bound = self.call_signature.bind(*args, **kwargs)
        bound.apply_defaults()
        return tuple(bound.arguments[p.name] for p in self.parameters)


@dataclass(frozen=True, eq=False)
class ContractDescriptor:
    """Every operation of a contract, keyed by attribute name."""

    contract: type
    name: str
    operations: Mapping[str, OperationDescriptor]

    def operation(self, ref: object) -> OperationDescriptor:
        """Locate an operation by name or by the contract attribute itself.

        Raises:
            ConfigurationError: If ``ref`` names no operation of the contract.
        """
        name = operation_name(ref)
        operation = self.operations.get(name)
        if operation is None:
            raise ConfigurationError(
                f"The method {name} does not exist in the contract {self.name}.",
                operation=name,
            )
        return operation

    def __iter__(self):
        return iter(self.operations.values())

    def __len__(self) -> int:
        return len(self.operations)


def operation_name(ref: object) -> str:
    """Name of the operation ``ref`` refers to (str, function or property)."""
    if isinstance(ref, str):
        return ref
    if isinstance(ref, property):
        if ref.fget is None:
            raise ConfigurationError("Invalid expression. Property has no getter.")
        return ref.fget.__name__
    name = getattr(ref, "__name__", None)
    if not isinstance(name, str):
        raise ConfigurationError(
            f"Invalid expression {ref!r}. Expression should name a contract operation."
        )
    return name


def _type_hints(func: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError) as exc:
        # Locally defined types cannot be resolved; keep the raw annotations
        logger.debug("Unresolved annotations on %s: %s", func.__qualname__, exc)
        return dict(getattr(func, "__annotations__", {}))


def _substitute(tp: Any, mapping: Mapping[Any, Any]) -> Any:
    if not mapping:
        return tp
    if isinstance(tp, typing.TypeVar):
        return mapping.get(tp, tp)
    params = getattr(tp, "__parameters__", ())
    if params and typing.get_origin(tp) is not None:
        return tp[tuple(mapping.get(p, p) for p in params)]
    return tp


def _collect_typevars(tp: Any, found: list[str]) -> None:
    if isinstance(tp, typing.TypeVar):
        if tp.__name__ not in found:
            found.append(tp.__name__)
        return
    for arg in typing.get_args(tp):
        _collect_typevars(arg, found)


def _describe_method(name: str, func: Any, mapping: Mapping[Any, Any]) -> OperationDescriptor:
    signature = inspect.signature(func)
    hints = _type_hints(func)
    declared = list(signature.parameters.values())[1:]  # drop self

    parameters = []
    for param in declared:
        annotation = hints.get(param.name, Any)
        parameters.append(
            ParameterDescriptor(
                name=param.name,
                annotation=_substitute(annotation, mapping),
                kind=_KIND_BY_INSPECT[param.kind],
            )
        )

    return_annotation = _substitute(hints.get("return", Any), mapping)
    generic_args: list[str] = []
    for annotation in [p.annotation for p in parameters] + [return_annotation]:
        _collect_typevars(annotation, generic_args)

    return OperationDescriptor(
        name=name,
        kind=OperationKind.METHOD,
        parameters=tuple(parameters),
        returns=describe_return(return_annotation, is_async=inspect.iscoroutinefunction(func)),
        generic_args=tuple(generic_args),
        call_signature=signature.replace(parameters=declared),
    )


def _describe_property(
    name: str, prop: property, mapping: Mapping[Any, Any]
) -> OperationDescriptor:
    annotation: Any = Any
    if prop.fget is not None:
        annotation = _substitute(_type_hints(prop.fget).get("return", Any), mapping)
    return OperationDescriptor(
        name=name,
        kind=OperationKind.PROPERTY,
        returns=describe_return(annotation),
        settable=prop.fset is not None,
    )


def _build(contract: Any) -> ContractDescriptor:
    origin = typing.get_origin(contract) or contract
    if not isinstance(origin, type):
        raise ConfigurationError(f"{contract!r} is not a class and cannot be substituted.")

    mapping: dict[Any, Any] = {}
    if origin is not contract:
        params = getattr(origin, "__parameters__", ())
        mapping = dict(zip(params, typing.get_args(contract)))

    operations: dict[str, OperationDescriptor] = {}
    for klass in reversed(origin.__mro__):
        if klass in _IGNORED_BASES:
            continue
        for name, attr in vars(klass).items():
            if name.startswith("_"):
                continue
            if isinstance(attr, property):
                operations[name] = _describe_property(name, attr, mapping)
            elif inspect.isfunction(attr):
                operations[name] = _describe_method(name, attr, mapping)
            else:
                # Shadowed by a non-operation attribute in a subclass
                operations.pop(name, None)

    name = origin.__qualname__ if origin is contract else render_type(contract)
    logger.debug("Described contract %s with %d operations", name, len(operations))
    return ContractDescriptor(contract=origin, name=name, operations=operations)


_cache: dict[Any, ContractDescriptor] = {}
_cache_lock = threading.Lock()


def describe_contract(contract: Any) -> ContractDescriptor:
    """Describe a contract, computing its descriptor at most once.

    Args:
        contract: A class or a parameterized generic alias of one.

    Raises:
        ConfigurationError: If ``contract`` is not a class.
    """
    with _cache_lock:
        cached = _cache.get(contract)
    if cached is not None:
        return cached
    descriptor = _build(contract)
    with _cache_lock:
        return _cache.setdefault(contract, descriptor)
