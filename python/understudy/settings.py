"""Per-substitute configuration.

Controls what happens to unresolved calls, whether invocation records are
kept, and whether deferred payloads are coerced to their declared type.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum


class MockBehavior(str, Enum):
    """How a substitute answers calls nothing was set up for."""

    STRICT = "strict"  # raise UnimplementedOperation
    LOOSE = "loose"  # return the declared type's zero value


@dataclass
class SubstituteConfig:
    """Configuration for one substitute's dispatch engine.

    Attributes:
        behavior: Fallback for calls with no setup and no unhandled policy.
        record_history: Append an invocation record for completed calls.
        coerce_results: Convert deferred payloads to the declared payload
            type. When False the raw value is wrapped unchanged.
    """

    behavior: MockBehavior = MockBehavior.STRICT
    record_history: bool = True
    coerce_results: bool = True

    def to_json(self) -> str:
        """Serialize to JSON string."""
        d = asdict(self)
        d["behavior"] = self.behavior.value
        return json.dumps(d)

    @classmethod
    def from_json(cls, data: str) -> SubstituteConfig:
        """Deserialize from JSON string."""
        d = json.loads(data)
        d["behavior"] = MockBehavior(d["behavior"])
        return cls(**d)
