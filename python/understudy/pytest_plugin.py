"""pytest plugin providing a per-test substitute registry.

Registered through the ``pytest11`` entry point, so the fixture is
available as soon as understudy is installed::

    def test_greets(substitutes):
        greeter = substitutes.create_substitute(Greeter)
        substitutes.engine_for(greeter).setup_returns("greet", "hi")
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from understudy.registry import SubstituteRegistry


@pytest.fixture
def substitutes() -> Iterator[SubstituteRegistry]:
    """A fresh registry, cleared when the test finishes."""
    registry = SubstituteRegistry()
    yield registry
    registry.clear()
