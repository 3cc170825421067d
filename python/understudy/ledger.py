"""Call ledger: per-substitute call counters and invocation history.

Counters are bumped once per observed call, before resolution, so a
suppressed or failed call still counts. History records are appended
only for completed calls and are meant for humans; their order across
threads is not meaningful.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InvocationRecord:
    """A completed call, rendered for inspection.

    Attributes:
        operation: Operation name as declared on the contract.
        arguments: ``repr`` of each argument, in parameter order.
    """

    operation: str
    arguments: tuple[str, ...] = ()

    @classmethod
    def of(cls, operation: str, arguments: Sequence[Any]) -> InvocationRecord:
        return cls(operation, tuple(repr(a) for a in arguments))

    def __str__(self) -> str:
        return f"{self.operation} was called with arguments: {', '.join(self.arguments)}"


class CallLedger:
    """Thread-safe call counters and append-only invocation history."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}
        self._history: list[InvocationRecord] = []

    def record_call(self, signature: str) -> int:
        """Increment the counter for ``signature`` and return the new count."""
        with self._lock:
            count = self._counts.get(signature, 0) + 1
            self._counts[signature] = count
        return count

    def count_of(self, signature: str) -> int:
        """Number of observed calls, 0 for a signature never seen."""
        with self._lock:
            return self._counts.get(signature, 0)

    def counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def append_history(self, record: InvocationRecord) -> None:
        with self._lock:
            self._history.append(record)

    def history(self) -> list[InvocationRecord]:
        """Snapshot of every record appended so far."""
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()
            self._history.clear()
