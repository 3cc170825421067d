"""Signature codec: canonical keys for operations and argument patterns.

An operation signature is derived from static information only: the
operation name, each parameter's kind marker and type tag, and any
function-scoped type variables::

    greet(str,int)<>
    find(*str,kw:bool)<T>
    name{get}

A composite key appends an argument fingerprint::

    greet(str,int)<>|<any>,'Bob'

Matcher positions render as the wildcard token, every other position as
the ``repr`` of the value. Key equality is plain string equality.
"""

from __future__ import annotations

import typing
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from understudy.matcher import Matcher

if TYPE_CHECKING:
    from understudy.contract import OperationDescriptor

ANY_TOKEN = "<any>"

_MISSING = object()


def render_type(tp: Any) -> str:
    """Render a type annotation as a stable type tag."""
    if tp is Any:
        return "Any"
    if tp is None or tp is type(None):
        return "None"
    if isinstance(tp, typing.TypeVar):
        return tp.__name__
    if isinstance(tp, str):
        return tp
    if isinstance(tp, type) and not typing.get_args(tp):
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp).replace("typing.", "")


def signature_of(operation: OperationDescriptor) -> str:
    """Derive the canonical signature key of an operation."""
    if operation.is_property:
        return f"{operation.name}{{get}}"
    params = ",".join(f"{p.kind.value}{render_type(p.annotation)}" for p in operation.parameters)
    generics = ",".join(operation.generic_args)
    return f"{operation.name}({params})<{generics}>"


def render_value(value: Any) -> str:
    """Render a literal argument for use in a fingerprint."""
    if isinstance(value, Matcher):
        return ANY_TOKEN
    return repr(value)


def fingerprint_of(arguments: Sequence[Any], expected: Sequence[Any] | None = None) -> str:
    """Build the argument fingerprint of a call.

    Positions whose expected value is a Matcher render as the wildcard
    token; all others render the actual value, not the expected one.

    Args:
        arguments: Call-time argument values, in parameter order.
        expected: Expected-arguments pattern the fingerprint is built for.
    """
    tokens = []
    for i, value in enumerate(arguments):
        expected_arg = expected[i] if expected is not None and i < len(expected) else _MISSING
        if isinstance(expected_arg, Matcher):
            tokens.append(ANY_TOKEN)
        else:
            tokens.append(render_value(value))
    return ",".join(tokens)


def composite_key(signature: str, fingerprint: str) -> str:
    """Join a signature and a fingerprint into a composite key."""
    return f"{signature}|{fingerprint}"
