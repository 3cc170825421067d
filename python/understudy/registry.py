"""Substitute registry: maps each substitute to its dispatch engine.

A registry owns the substitutes it creates. Entries are dropped when the
substitute is garbage-collected, so there is no explicit teardown. Tests
that want isolation create their own registry (or use the ``substitutes``
pytest fixture); the module-level default registry backs ``create_mock``
and ``config``.

Usage::

    from understudy import config, create_mock

    greeter = create_mock(Greeter)
    config(greeter).setup_returns(Greeter.greet, "hello")
    assert greeter.greet("Bob") == "hello"
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Any

from understudy.contract import describe_contract
from understudy.engine import DispatchEngine
from understudy.errors import NotFound, NullArgument
from understudy.proxy import materialize
from understudy.settings import SubstituteConfig

logger = logging.getLogger(__name__)


class SubstituteRegistry:
    """Creates substitutes and finds the engine behind each one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._engines: dict[int, DispatchEngine] = {}

    def create_substitute(self, contract: Any, config: SubstituteConfig | None = None) -> Any:
        """Materialize a substitute for ``contract`` with a fresh engine.

        Args:
            contract: Class or parameterized generic alias to honor.
            config: Engine settings; defaults to a strict configuration.

        Raises:
            ConfigurationError: If ``contract`` is not a class.
        """
        descriptor = describe_contract(contract)
        engine = DispatchEngine(descriptor, config)
        substitute = materialize(engine)
        key = id(substitute)
        with self._lock:
            self._engines[key] = engine
        weakref.finalize(substitute, self._forget, key)
        logger.info("Created substitute for %s", descriptor.name)
        return substitute

    def engine_for(self, substitute: Any) -> DispatchEngine:
        """Return the engine behind a substitute created by this registry.

        Raises:
            NullArgument: If ``substitute`` is None.
            NotFound: If the object was not created by this registry.
        """
        if substitute is None:
            raise NullArgument("The provided object cannot be null.")
        with self._lock:
            engine = self._engines.get(id(substitute))
        if engine is None or engine.substitute is not substitute:
            raise NotFound("The provided object is not a substitute created by this registry.")
        return engine

    def _forget(self, key: int) -> None:
        with self._lock:
            self._engines.pop(key, None)

    def clear(self) -> None:
        """Forget every substitute; existing ones keep working but are unreachable."""
        with self._lock:
            self._engines.clear()

    def __contains__(self, substitute: object) -> bool:
        try:
            self.engine_for(substitute)
        except (NotFound, NullArgument):
            return False
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)


default_registry = SubstituteRegistry()


def create_mock(
    contract: Any,
    config: SubstituteConfig | None = None,
    registry: SubstituteRegistry | None = None,
) -> Any:
    """Create a substitute in ``registry`` (the default registry if omitted)."""
    if registry is None:
        registry = default_registry
    return registry.create_substitute(contract, config)


def config(substitute: Any, registry: SubstituteRegistry | None = None) -> DispatchEngine:
    """Return the engine configuring ``substitute``."""
    if registry is None:
        registry = default_registry
    return registry.engine_for(substitute)
