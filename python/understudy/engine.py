"""Dispatch engine: decides what every call on a substitute does.

Per call the engine:

1. counts the call against its operation signature (always);
2. answers property reads from stubbed values when present;
3. looks up a behavior: exact composite key, then the method default,
   then a matching sequence;
4. checks the call's arguments against the registered patterns and
   silently suppresses the call on mismatch (no result, no history);
5. otherwise falls back to the unhandled policy, the LOOSE zero value,
   or raises ``UnimplementedOperation``;
6. adapts the raw result to the declared return shape and records the
   call in the history.

A suppressed call leaves ``Invocation.return_value`` at None. This is the
documented behavior for "wrong arguments" as opposed to "no setup".
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from understudy.behaviors import Behavior, BehaviorRegistry, ResolutionKind, constant
from understudy.contract import ContractDescriptor, OperationDescriptor
from understudy.errors import (
    ConfigurationError,
    SequenceExhausted,
    TypeMismatch,
    UnimplementedOperation,
    VerificationError,
)
from understudy.ledger import CallLedger, InvocationRecord
from understudy.matcher import arguments_match, zero_value
from understudy.returns import ReturnShape, adapt_result, coerce, conforms
from understudy.settings import MockBehavior, SubstituteConfig

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """A single call on a substitute, as seen by behaviors.

    Attributes:
        substitute: The object the call was made on.
        operation: Descriptor of the called operation.
        arguments: Bound arguments in declared parameter order.
        return_value: Outgoing result, set by the engine.
    """

    substitute: Any
    operation: OperationDescriptor
    arguments: tuple[Any, ...] = ()
    return_value: Any = None

    @property
    def method_name(self) -> str:
        return self.operation.name

    @property
    def signature(self) -> str:
        return self.operation.key

    @property
    def named_arguments(self) -> dict[str, Any]:
        return {p.name: v for p, v in zip(self.operation.parameters, self.arguments)}


class DispatchEngine:
    """Interception and behavior resolution for one substitute.

    Args:
        contract: Descriptor of the contract the substitute honors.
        config: Fallback, history and coercion settings.
    """

    def __init__(
        self, contract: ContractDescriptor, config: SubstituteConfig | None = None
    ) -> None:
        self.contract = contract
        self.config = config or SubstituteConfig()
        self.unhandled_method: Behavior | None = None
        self._registry = BehaviorRegistry()
        self._ledger = CallLedger()
        self._substitute: weakref.ref[Any] | None = None

    @property
    def substitute(self) -> Any:
        """The substitute this engine serves, or None once collected."""
        return self._substitute() if self._substitute is not None else None

    def attach(self, substitute: Any) -> None:
        self._substitute = weakref.ref(substitute)

    # -- dispatch ---------------------------------------------------------

    def intercept(self, invocation: Invocation) -> None:
        """Resolve and run the behavior for a call, setting its return value.

        Raises:
            SequenceExhausted: The matched sequence has no entries left.
            UnimplementedOperation: Nothing applies and no fallback is set.
            TypeMismatch: The result cannot take the declared return shape.
        """
        operation = invocation.operation
        signature = operation.key
        arguments = invocation.arguments
        self._ledger.record_call(signature)

        if operation.is_property:
            found, value = self._registry.property_value(operation.name)
            if found:
                self._complete(invocation, value)
                return

        resolution = self._registry.lookup(signature, arguments)

        if resolution.kind in (ResolutionKind.EXACT, ResolutionKind.DEFAULT):
            if resolution.patterns and not any(
                arguments_match(arguments, pattern) for pattern in resolution.patterns
            ):
                logger.debug("Suppressed %s: arguments do not match any setup", signature)
                return
            logger.debug("Resolved %s via %s", resolution.key, resolution.kind.value)
            self._complete(invocation, resolution.behavior(invocation))
            return

        if resolution.kind is ResolutionKind.SEQUENCE:
            behavior = resolution.sequence.take()
            if behavior is None:
                raise SequenceExhausted(operation.name, resolution.key)
            logger.debug("Resolved %s via sequence", resolution.key)
            self._complete(invocation, behavior(invocation))
            return

        if self._registry.has_patterns(signature):
            logger.debug("Suppressed %s: no argument setup matches", resolution.key)
            return

        self._handle_unhandled(invocation)

    def _handle_unhandled(self, invocation: Invocation) -> None:
        operation = invocation.operation
        if self.unhandled_method is not None:
            logger.debug("Unhandled %s routed to unhandled policy", operation.key)
            self._complete(invocation, self.unhandled_method(invocation))
        elif self.config.behavior is MockBehavior.LOOSE:
            self._complete(invocation, zero_value(operation.returns.payload), coerce_result=False)
        else:
            raise UnimplementedOperation(operation.name)

    def _complete(self, invocation: Invocation, raw: Any, coerce_result: bool = True) -> None:
        invocation.return_value = adapt_result(
            raw,
            invocation.operation.returns,
            coerce_payload=coerce_result and self.config.coerce_results,
        )
        if self.config.record_history:
            self._ledger.append_history(
                InvocationRecord.of(invocation.operation.name, invocation.arguments)
            )

    # -- setup ------------------------------------------------------------

    def _check_return(self, operation: OperationDescriptor, value: Any) -> None:
        returns = operation.returns
        if returns.shape is ReturnShape.DEFERRED_EMPTY:
            return
        if returns.shape is ReturnShape.DEFERRED_WITH_PAYLOAD:
            try:
                coerce(value, returns.payload)
            except TypeMismatch as exc:
                if not hasattr(value, "__await__"):
                    raise ConfigurationError(
                        f"The return type of method {operation.name} is not "
                        f"{type(value).__name__}",
                        operation=operation.name,
                    ) from exc
            return
        if not conforms(value, returns.annotation):
            raise ConfigurationError(
                f"The return type of method {operation.name} is not {type(value).__name__}",
                operation=operation.name,
            )

    @staticmethod
    def _check_behavior(operation: OperationDescriptor, behavior: Any) -> None:
        if behavior is None:
            raise ConfigurationError("The setup action cannot be null.", operation=operation.name)
        if not callable(behavior):
            raise ConfigurationError(
                f"The setup action for {operation.name} must be callable, "
                f"got {type(behavior).__name__}",
                operation=operation.name,
            )

    def setup_returns(self, op: object, value: Any) -> DispatchEngine:
        """Make every call of ``op`` return ``value``, whatever the arguments.

        Raises:
            ConfigurationError: Unknown operation or value of the wrong type.
        """
        operation = self.contract.operation(op)
        self._check_return(operation, value)
        self._registry.register_default(operation, constant(value))
        return self

    def setup_method(self, op: object, behavior: Behavior) -> DispatchEngine:
        """Run ``behavior(invocation)`` for every call of ``op``.

        Raises:
            ConfigurationError: Unknown operation or missing callback.
        """
        operation = self.contract.operation(op)
        self._check_behavior(operation, behavior)
        self._registry.register_default(operation, behavior)
        return self

    def setup_method_with_args(
        self,
        op: object,
        expected_args: Iterable[Any],
        behavior: Behavior,
    ) -> DispatchEngine:
        """Run ``behavior`` for calls of ``op`` matching ``expected_args``.

        Literal positions must compare equal; ``Matcher`` positions must
        accept the value. Calls that match no pattern are suppressed.

        Raises:
            ConfigurationError: Unknown operation, missing callback, or a
                pattern length different from the parameter count.
        """
        operation = self.contract.operation(op)
        self._check_behavior(operation, behavior)
        self._registry.register_with_args(operation, list(expected_args), behavior)
        return self

    def setup_sequence(
        self, op: object, results: Iterable[Any], *expected_args: Any
    ) -> DispatchEngine:
        """Return ``results`` one per matching call, then raise SequenceExhausted.

        Raises:
            ConfigurationError: Unknown operation, a result of the wrong
                type, or a pattern length different from the parameter count.
        """
        operation = self.contract.operation(op)
        results = list(results)
        for result in results:
            self._check_return(operation, result)
        self._registry.register_sequence(operation, expected_args, results)
        return self

    def setup_property(self, op: object, value: Any) -> DispatchEngine:
        """Stub the value returned when a contract property is read.

        Raises:
            ConfigurationError: Unknown name, not a property, or wrong type.
        """
        operation = self.contract.operation(op)
        if operation.is_property:
            self._check_return(operation, value)
        self._registry.register_property(operation, value)
        return self

    def set_unhandled_policy(self, behavior: Behavior | None) -> DispatchEngine:
        """Set (or clear with None) the behavior for calls nothing handles."""
        self.unhandled_method = behavior
        return self

    # -- inspection -------------------------------------------------------

    def call_count(self, op: object) -> int:
        """Number of calls observed for ``op``, suppressed ones included."""
        return self._ledger.count_of(self.contract.operation(op).key)

    def verify_call_count(self, op: object, expected: int) -> None:
        """Raise VerificationError unless ``op`` was called ``expected`` times."""
        operation = self.contract.operation(op)
        actual = self._ledger.count_of(operation.key)
        if actual != expected:
            raise VerificationError(operation.key, expected, actual)

    def invocation_history(self) -> list[InvocationRecord]:
        return self._ledger.history()

    def reset(self) -> None:
        """Forget every setup, counter and history record."""
        self._registry.clear()
        self._ledger.clear()
        self.unhandled_method = None
