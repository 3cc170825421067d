"""understudy: programmable, observable test doubles for Python contracts."""

__version__ = "0.1.0"

from understudy.behaviors import BehaviorRegistry, BehaviorSequence, Resolution, ResolutionKind
from understudy.contract import (
    ContractDescriptor,
    OperationDescriptor,
    OperationKind,
    ParameterDescriptor,
    ParameterKind,
    describe_contract,
)
from understudy.engine import DispatchEngine, Invocation
from understudy.errors import (
    ConfigurationError,
    NotFound,
    NullArgument,
    SequenceExhausted,
    TypeMismatch,
    UnderstudyError,
    UnimplementedOperation,
    VerificationError,
)
from understudy.ledger import CallLedger, InvocationRecord
from understudy.matcher import ANY, It, Matcher, zero_value
from understudy.registry import SubstituteRegistry, config, create_mock, default_registry
from understudy.returns import Completed, ReturnDescriptor, ReturnShape, adapt_result
from understudy.settings import MockBehavior, SubstituteConfig
from understudy.signature import composite_key, fingerprint_of, signature_of

__all__ = [
    # Matchers
    "ANY",
    "It",
    "Matcher",
    "zero_value",
    # Contracts and signatures
    "ContractDescriptor",
    "OperationDescriptor",
    "OperationKind",
    "ParameterDescriptor",
    "ParameterKind",
    "composite_key",
    "describe_contract",
    "fingerprint_of",
    "signature_of",
    # Behaviors and ledger
    "BehaviorRegistry",
    "BehaviorSequence",
    "CallLedger",
    "InvocationRecord",
    "Resolution",
    "ResolutionKind",
    # Dispatch
    "DispatchEngine",
    "Invocation",
    # Return shapes
    "Completed",
    "ReturnDescriptor",
    "ReturnShape",
    "adapt_result",
    # Substitutes
    "SubstituteRegistry",
    "config",
    "create_mock",
    "default_registry",
    # Configuration
    "MockBehavior",
    "SubstituteConfig",
    # Errors
    "ConfigurationError",
    "NotFound",
    "NullArgument",
    "SequenceExhausted",
    "TypeMismatch",
    "UnderstudyError",
    "UnimplementedOperation",
    "VerificationError",
]
