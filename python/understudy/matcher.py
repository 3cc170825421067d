"""Argument matchers: predicate-based acceptance rules for setups.

A ``Matcher`` placed in an expected-arguments list says "this position
accepts any value satisfying the predicate". Matchers render as the
wildcard token in composite keys, so a single setup covers every call
whose literal positions agree.

Usage::

    from understudy.matcher import It

    engine.setup_method_with_args(
        "greet", [It.is_any(), "Bob"], lambda invocation: "hi Bob"
    )
    engine.setup_method_with_args(
        "charge", [It.is_any(lambda amount: amount > 0)], lambda inv: True
    )
"""

from __future__ import annotations

import typing
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import Any

_ZERO_FACTORIES: tuple[type, ...] = (
    int,
    float,
    complex,
    bool,
    str,
    bytes,
    Decimal,
    list,
    dict,
    set,
    frozenset,
    tuple,
)


def zero_value(tp: object) -> Any:
    """Return the zero/empty value of a declared type, or None.

    Builtin scalars and containers get their empty constructor result;
    parameterized generics use their origin (``list[int]`` -> ``[]``).
    Everything else, including ``Optional[X]``, degrades to None.
    """
    origin = typing.get_origin(tp) or tp
    if isinstance(origin, type) and origin in _ZERO_FACTORIES:
        return origin()
    return None


class Matcher:
    """Wraps a predicate over a call-time argument value.

    Args:
        predicate: Pure function deciding whether a value is accepted.
        of: Optional type; values that are not instances never match.
    """

    __slots__ = ("_predicate", "_of")

    def __init__(
        self,
        predicate: Callable[[Any], bool] | None = None,
        of: type | None = None,
    ) -> None:
        self._predicate = predicate
        self._of = of

    @property
    def of(self) -> type | None:
        return self._of

    def matches(self, value: Any) -> bool:
        """Evaluate the predicate against a call-time value."""
        if self._of is not None and not isinstance(value, self._of):
            return False
        if self._predicate is None:
            return True
        return bool(self._predicate(value))

    def get(self) -> Any:
        """Synthesize the zero value of the matcher's type.

        Informational only; matching never uses it.
        """
        return zero_value(self._of)

    def __repr__(self) -> str:
        kind = "any" if self._predicate is None else "predicate"
        of = f", of={self._of.__name__}" if self._of is not None else ""
        return f"Matcher({kind}{of})"


class It:
    """Factory namespace for matchers."""

    @staticmethod
    def is_any(
        predicate: Callable[[Any], bool] | None = None,
        *,
        of: type | None = None,
    ) -> Matcher:
        """Return a matcher accepting every value, or those satisfying predicate."""
        return Matcher(predicate, of=of)

    @staticmethod
    def any_value(of: type | None = None) -> Any:
        """Return the zero value of ``of`` (a placeholder, not a matcher)."""
        return Matcher(of=of).get()


ANY = It.is_any()


def arguments_match(arguments: Sequence[Any], expected: Sequence[Any]) -> bool:
    """Check call-time arguments against an expected-arguments pattern.

    Matcher positions must accept the value; literal positions must be
    the same object or compare equal.
    """
    if len(arguments) != len(expected):
        return False
    for actual, expected_arg in zip(arguments, expected):
        if isinstance(expected_arg, Matcher):
            if not expected_arg.matches(actual):
                return False
        elif expected_arg is not actual and expected_arg != actual:
            return False
    return True
