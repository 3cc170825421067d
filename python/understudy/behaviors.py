"""Behavior registry: what a substitute does for each operation.

Four stores, all keyed by signature or composite key:

- defaults:   signature -> behavior, ignores call arguments
- exact:      composite key -> behavior, one per expected-arguments pattern
- sequences:  composite key -> one-shot queue of behaviors
- properties: property name -> stubbed value

Lookup order for a call is exact composite key, then default, then a
sequence whose pattern accepts the call. Re-registering is
last-writer-wins. Each sequence has its own lock so that dequeuing and
checking for exhaustion is a single atomic step.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from understudy.errors import ConfigurationError
from understudy.matcher import arguments_match
from understudy.signature import composite_key, fingerprint_of

if TYPE_CHECKING:
    from understudy.contract import OperationDescriptor
    from understudy.engine import Invocation

logger = logging.getLogger(__name__)

Behavior = Callable[["Invocation"], Any]
Pattern = tuple[Any, ...]


def constant(value: Any) -> Behavior:
    """Behavior that ignores the invocation and returns ``value``."""

    def behavior(invocation: Invocation) -> Any:
        return value

    return behavior


class ResolutionKind(str, Enum):
    """Which lookup path produced a behavior for a call."""

    EXACT = "exact"
    DEFAULT = "default"
    SEQUENCE = "sequence"
    NONE = "none"


class BehaviorSequence:
    """One-shot queue of behaviors consumed in registration order.

    Args:
        behaviors: Behaviors to hand out, first to last.
        pattern: Expected-arguments pattern the sequence was set up with.
    """

    __slots__ = ("_entries", "_lock", "pattern")

    def __init__(self, behaviors: Iterable[Behavior], pattern: Pattern) -> None:
        self._entries: deque[Behavior] = deque(behaviors)
        self._lock = threading.Lock()
        self.pattern = pattern

    def take(self) -> Behavior | None:
        """Dequeue the next behavior, or None when exhausted."""
        with self._lock:
            if not self._entries:
                return None
            return self._entries.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class Resolution:
    """Outcome of a registry lookup for one call.

    Attributes:
        kind: Lookup path that matched, or NONE.
        key: Composite key (or bare signature for defaults) that matched.
        behavior: Behavior for EXACT and DEFAULT resolutions.
        patterns: Patterns the call must satisfy to proceed. For EXACT the
            matched pattern; for DEFAULT every registered pattern.
        sequence: The matched sequence for SEQUENCE resolutions.
    """

    kind: ResolutionKind
    key: str
    behavior: Behavior | None = None
    patterns: tuple[Pattern, ...] = ()
    sequence: BehaviorSequence | None = None


def _check_arity(operation: OperationDescriptor, expected_args: Sequence[Any]) -> None:
    if len(expected_args) != operation.parameter_count:
        raise ConfigurationError(
            "The number of expected arguments does not match the number of method "
            f"parameters ({len(expected_args)} != {operation.parameter_count}).",
            operation=operation.name,
        )


class BehaviorRegistry:
    """Per-substitute mapping from signature keys to behaviors."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._defaults: dict[str, Behavior] = {}
        self._exact: dict[str, Behavior] = {}
        # signature -> {composite key: pattern}, insertion ordered
        self._patterns: dict[str, dict[str, Pattern]] = {}
        self._sequences: dict[str, BehaviorSequence] = {}
        self._sequence_patterns: dict[str, dict[str, Pattern]] = {}
        self._properties: dict[str, Any] = {}

    # -- registration -----------------------------------------------------

    def register_default(self, operation: OperationDescriptor, behavior: Behavior) -> str:
        """Set the argument-independent behavior of an operation."""
        signature = operation.key
        with self._lock:
            self._defaults[signature] = behavior
        logger.debug("Registered default behavior for %s", signature)
        return signature

    def register_with_args(
        self,
        operation: OperationDescriptor,
        expected_args: Sequence[Any],
        behavior: Behavior,
    ) -> str:
        """Register a behavior for calls matching ``expected_args``.

        Raises:
            ConfigurationError: If the pattern length differs from the
                operation's parameter count.
        """
        _check_arity(operation, expected_args)
        pattern = tuple(expected_args)
        signature = operation.key
        key = composite_key(signature, fingerprint_of(pattern))
        with self._lock:
            self._exact[key] = behavior
            patterns = self._patterns.setdefault(signature, {})
            patterns.pop(key, None)
            patterns[key] = pattern
        logger.debug("Registered argument behavior for %s", key)
        return key

    def register_sequence(
        self,
        operation: OperationDescriptor,
        expected_args: Sequence[Any],
        results: Iterable[Any],
    ) -> str:
        """Register a one-shot queue producing ``results`` in order.

        Raises:
            ConfigurationError: If the pattern length differs from the
                operation's parameter count.
        """
        _check_arity(operation, expected_args)
        pattern = tuple(expected_args)
        signature = operation.key
        key = composite_key(signature, fingerprint_of(pattern))
        sequence = BehaviorSequence((constant(r) for r in results), pattern)
        with self._lock:
            self._sequences[key] = sequence
            patterns = self._sequence_patterns.setdefault(signature, {})
            patterns.pop(key, None)
            patterns[key] = pattern
        logger.debug("Registered sequence of %d for %s", len(sequence), key)
        return key

    def register_property(self, operation: OperationDescriptor, value: Any) -> None:
        """Stub a property's value.

        Raises:
            ConfigurationError: If the operation is not a property.
        """
        if not operation.is_property:
            raise ConfigurationError(
                "Invalid expression. Expression should represent a property.",
                operation=operation.name,
            )
        with self._lock:
            self._properties[operation.name] = value
        logger.debug("Stubbed property %s", operation.name)

    # -- lookup -----------------------------------------------------------

    def property_value(self, name: str) -> tuple[bool, Any]:
        """Return ``(found, value)`` for a stubbed property."""
        with self._lock:
            if name in self._properties:
                return True, self._properties[name]
        return False, None

    def has_patterns(self, signature: str) -> bool:
        """True if any argument-specific behavior exists for the signature.

        Sequences do not count: a call no sequence accepts is unhandled.
        """
        with self._lock:
            return bool(self._patterns.get(signature))

    def sequence_at(self, key: str) -> BehaviorSequence | None:
        with self._lock:
            return self._sequences.get(key)

    def lookup(self, signature: str, arguments: Sequence[Any]) -> Resolution:
        """Find the behavior that applies to a call.

        Exact composite keys are tried most recent pattern first, skipping
        patterns whose matchers reject the arguments, then the default, then
        sequences whose pattern accepts the arguments.
        """
        with self._lock:
            exact = list(self._patterns.get(signature, {}).items())
            default = self._defaults.get(signature)
            sequences = list(self._sequence_patterns.get(signature, {}).items())

        for key, pattern in reversed(exact):
            if composite_key(signature, fingerprint_of(arguments, pattern)) != key:
                continue
            if not arguments_match(arguments, pattern):
                continue
            with self._lock:
                behavior = self._exact.get(key)
            if behavior is not None:
                return Resolution(ResolutionKind.EXACT, key, behavior, (pattern,))

        if default is not None:
            patterns = tuple(pattern for _, pattern in exact)
            return Resolution(ResolutionKind.DEFAULT, signature, default, patterns)

        for key, pattern in reversed(sequences):
            if composite_key(signature, fingerprint_of(arguments, pattern)) != key:
                continue
            if not arguments_match(arguments, pattern):
                continue
            sequence = self.sequence_at(key)
            if sequence is not None:
                return Resolution(
                    ResolutionKind.SEQUENCE, key, patterns=(pattern,), sequence=sequence
                )

        return Resolution(ResolutionKind.NONE, composite_key(signature, fingerprint_of(arguments)))

    def clear(self) -> None:
        """Drop every registered behavior, sequence and property stub."""
        with self._lock:
            self._defaults.clear()
            self._exact.clear()
            self._patterns.clear()
            self._sequences.clear()
            self._sequence_patterns.clear()
            self._properties.clear()
