"""Return-shape adaptation for immediate and awaitable operations.

Behaviors produce plain values. Operations declared ``async def`` (or
annotated as returning an awaitable) must hand the caller something it
can ``await``, so the raw value is wrapped in an already-finished
``Completed``. Awaiting a ``Completed`` never suspends.

Shapes:
    IMMEDIATE              the raw value is the result.
    DEFERRED_WITH_PAYLOAD  ``Completed(payload)``, payload coerced to
                             the declared payload type.
    DEFERRED_EMPTY         ``Completed()``; the raw value is dropped.
"""

from __future__ import annotations

import asyncio
import collections.abc
import inspect
import types
import typing
from collections.abc import Generator
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from understudy.errors import TypeMismatch


class ReturnShape(str, Enum):
    """The shape a caller expects back from an operation."""

    IMMEDIATE = "immediate"
    DEFERRED_WITH_PAYLOAD = "deferred_with_payload"
    DEFERRED_EMPTY = "deferred_empty"


@dataclass(frozen=True)
class ReturnDescriptor:
    """Declared return shape of an operation.

    Attributes:
        shape: Immediate or one of the deferred shapes.
        annotation: The declared return annotation (``Any`` if missing).
        payload: Payload type for deferred shapes, else the annotation.
    """

    shape: ReturnShape
    annotation: Any = Any
    payload: Any = Any

    @property
    def is_deferred(self) -> bool:
        return self.shape is not ReturnShape.IMMEDIATE


class Completed:
    """An awaitable that has already finished, with an optional payload."""

    __slots__ = ("_payload", "_has_payload")

    def __init__(self, *payload: Any) -> None:
        if len(payload) > 1:
            raise TypeError("Completed takes at most one payload")
        self._has_payload = bool(payload)
        self._payload = payload[0] if payload else None

    @property
    def has_payload(self) -> bool:
        return self._has_payload

    def done(self) -> bool:
        return True

    def result(self) -> Any:
        return self._payload

    def __await__(self) -> Generator[Any, None, Any]:
        return self._payload
        yield  # makes this a generator without ever suspending

    def __repr__(self) -> str:
        if not self._has_payload:
            return "Completed()"
        return f"Completed({self._payload!r})"


_DEFERRED_ORIGINS = (
    collections.abc.Awaitable,
    collections.abc.Coroutine,
    asyncio.Future,
    asyncio.Task,
)


def _is_none_type(tp: Any) -> bool:
    return tp is None or tp is type(None)


def describe_return(annotation: Any, is_async: bool = False) -> ReturnDescriptor:
    """Build the return descriptor for a declared annotation.

    Args:
        annotation: Resolved return annotation, ``Any`` when missing.
        is_async: True for ``async def`` operations; the annotation is
            then the payload type.
    """
    if is_async:
        if _is_none_type(annotation):
            return ReturnDescriptor(ReturnShape.DEFERRED_EMPTY, annotation, None)
        return ReturnDescriptor(ReturnShape.DEFERRED_WITH_PAYLOAD, annotation, annotation)

    origin = typing.get_origin(annotation)
    if origin in _DEFERRED_ORIGINS:
        args = typing.get_args(annotation)
        # Coroutine[YieldT, SendT, ReturnT] carries its payload last
        payload = args[-1] if args else Any
        if _is_none_type(payload):
            return ReturnDescriptor(ReturnShape.DEFERRED_EMPTY, annotation, None)
        return ReturnDescriptor(ReturnShape.DEFERRED_WITH_PAYLOAD, annotation, payload)
    return ReturnDescriptor(ReturnShape.IMMEDIATE, annotation, annotation)


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def _is_static_protocol(tp: type) -> bool:
    # isinstance() raises on protocols without @runtime_checkable
    return bool(getattr(tp, "_is_protocol", False)) and not getattr(
        tp, "_is_runtime_protocol", False
    )


def conforms(value: Any, tp: Any) -> bool:
    """Check whether ``value`` already satisfies ``tp`` without conversion."""
    if tp is Any or tp is object or isinstance(tp, (typing.TypeVar, str)):
        return True
    if _is_none_type(tp):
        return value is None
    if _is_union(tp):
        return any(conforms(value, member) for member in typing.get_args(tp))
    origin = typing.get_origin(tp) or tp
    if not isinstance(origin, type):
        # Literal, Callable[...] and friends: not checked
        return True
    if _is_static_protocol(origin):
        return True
    if origin is float and isinstance(value, int) and not isinstance(value, bool):
        return True
    return isinstance(value, origin)


def _convert(value: Any, target: type) -> Any:
    if target is bool:
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if isinstance(value, (int, float)):
            return bool(value)
        raise TypeMismatch(value, target)
    if target is str:
        return str(value)
    try:
        return target(value)
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise TypeMismatch(value, target) from exc


_CONVERTIBLE: tuple[type, ...] = (int, float, complex, bool, str, Decimal)


def coerce(value: Any, tp: Any) -> Any:
    """Coerce ``value`` to ``tp``, raising TypeMismatch when impossible."""
    if conforms(value, tp):
        return value
    if value is None:
        raise TypeMismatch(value, tp)
    candidates = typing.get_args(tp) if _is_union(tp) else (tp,)
    for candidate in candidates:
        if candidate in _CONVERTIBLE:
            try:
                return _convert(value, candidate)
            except TypeMismatch:
                continue
    raise TypeMismatch(value, tp)


def adapt_result(raw: Any, returns: ReturnDescriptor, coerce_payload: bool = True) -> Any:
    """Adapt a behavior's raw value to the declared return shape.

    Awaitables pass through untouched, whatever the declared shape.
    """
    if inspect.isawaitable(raw):
        return raw
    if returns.shape is ReturnShape.DEFERRED_WITH_PAYLOAD:
        payload = coerce(raw, returns.payload) if coerce_payload else raw
        return Completed(payload)
    if returns.shape is ReturnShape.DEFERRED_EMPTY:
        return Completed()
    return raw
