"""Tests for understudy.registry."""

from __future__ import annotations

import gc
from typing import Protocol

import pytest
from understudy import config, create_mock
from understudy.errors import NotFound, NullArgument
from understudy.registry import SubstituteRegistry, default_registry
from understudy.settings import MockBehavior, SubstituteConfig


class Greeter(Protocol):
    def greet(self, name: str) -> str: ...


class TestSubstituteRegistry:
    def test_engine_for_created_substitute(self) -> None:
        registry = SubstituteRegistry()
        greeter = registry.create_substitute(Greeter)
        engine = registry.engine_for(greeter)
        assert engine.substitute is greeter
        assert greeter in registry
        assert len(registry) == 1

    def test_one_engine_per_substitute(self) -> None:
        registry = SubstituteRegistry()
        a = registry.create_substitute(Greeter)
        b = registry.create_substitute(Greeter)
        assert registry.engine_for(a) is not registry.engine_for(b)
        assert registry.engine_for(a) is registry.engine_for(a)

    def test_config_is_applied(self) -> None:
        registry = SubstituteRegistry()
        greeter = registry.create_substitute(Greeter, SubstituteConfig(behavior=MockBehavior.LOOSE))
        assert registry.engine_for(greeter).config.behavior is MockBehavior.LOOSE
        assert greeter.greet("x") == ""

    def test_none_raises_null_argument(self) -> None:
        with pytest.raises(NullArgument, match="cannot be null"):
            SubstituteRegistry().engine_for(None)

    def test_foreign_object_raises_not_found(self) -> None:
        with pytest.raises(NotFound):
            SubstituteRegistry().engine_for(object())

    def test_substitute_from_other_registry_not_found(self) -> None:
        greeter = SubstituteRegistry().create_substitute(Greeter)
        other = SubstituteRegistry()
        with pytest.raises(NotFound):
            other.engine_for(greeter)
        assert greeter not in other

    def test_entries_disappear_with_substitute(self) -> None:
        registry = SubstituteRegistry()
        greeter = registry.create_substitute(Greeter)
        assert len(registry) == 1
        del greeter
        gc.collect()
        assert len(registry) == 0

    def test_clear(self) -> None:
        registry = SubstituteRegistry()
        greeter = registry.create_substitute(Greeter)
        registry.clear()
        with pytest.raises(NotFound):
            registry.engine_for(greeter)


class TestConvenienceFunctions:
    def test_create_mock_and_config_use_default_registry(self) -> None:
        greeter = create_mock(Greeter)
        config(greeter).setup_returns(Greeter.greet, "hello")
        assert greeter.greet("Bob") == "hello"
        assert greeter in default_registry

    def test_explicit_empty_registry_is_used(self) -> None:
        registry = SubstituteRegistry()
        greeter = create_mock(Greeter, registry=registry)
        assert config(greeter, registry=registry) is registry.engine_for(greeter)
        assert greeter not in default_registry


class TestFixture:
    def test_substitutes_fixture_gives_fresh_registry(
        self, substitutes: SubstituteRegistry
    ) -> None:
        assert len(substitutes) == 0
        greeter = substitutes.create_substitute(Greeter)
        substitutes.engine_for(greeter).setup_returns("greet", "hi")
        assert greeter.greet("Ann") == "hi"
