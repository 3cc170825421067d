"""Tests for understudy.behaviors."""

from __future__ import annotations

import abc

import pytest
from understudy.behaviors import BehaviorRegistry, BehaviorSequence, ResolutionKind, constant
from understudy.contract import describe_contract
from understudy.errors import ConfigurationError
from understudy.matcher import It


class Directory(abc.ABC):
    @abc.abstractmethod
    def lookup(self, team: int, name: str) -> str: ...

    @abc.abstractmethod
    def size(self) -> int: ...

    @property
    @abc.abstractmethod
    def owner(self) -> str: ...


def _op(name: str):
    return describe_contract(Directory).operation(name)


@pytest.fixture
def registry() -> BehaviorRegistry:
    return BehaviorRegistry()


class TestRegistration:
    def test_register_default_uses_bare_signature(self, registry: BehaviorRegistry) -> None:
        key = registry.register_default(_op("size"), constant(3))
        assert key == "size()<>"

    def test_register_with_args_builds_composite_key(self, registry: BehaviorRegistry) -> None:
        key = registry.register_with_args(_op("lookup"), [It.is_any(), "Bob"], constant("x"))
        assert key == "lookup(int,str)<>|<any>,'Bob'"

    def test_register_with_args_checks_arity(self, registry: BehaviorRegistry) -> None:
        with pytest.raises(ConfigurationError, match="number of expected arguments"):
            registry.register_with_args(_op("lookup"), ["Bob"], constant("x"))

    def test_register_sequence_checks_arity(self, registry: BehaviorRegistry) -> None:
        with pytest.raises(ConfigurationError):
            registry.register_sequence(_op("size"), [1], [1, 2])

    def test_register_property_requires_property(self, registry: BehaviorRegistry) -> None:
        with pytest.raises(ConfigurationError, match="should represent a property"):
            registry.register_property(_op("size"), 3)

    def test_property_values(self, registry: BehaviorRegistry) -> None:
        assert registry.property_value("owner") == (False, None)
        registry.register_property(_op("owner"), "ops")
        assert registry.property_value("owner") == (True, "ops")

    def test_property_value_may_be_none(self, registry: BehaviorRegistry) -> None:
        registry.register_property(_op("owner"), None)
        assert registry.property_value("owner") == (True, None)


class TestLookup:
    def test_nothing_registered(self, registry: BehaviorRegistry) -> None:
        resolution = registry.lookup("size()<>", ())
        assert resolution.kind is ResolutionKind.NONE
        assert resolution.key == "size()<>|"

    def test_default(self, registry: BehaviorRegistry) -> None:
        registry.register_default(_op("size"), constant(3))
        resolution = registry.lookup("size()<>", ())
        assert resolution.kind is ResolutionKind.DEFAULT
        assert resolution.behavior(None) == 3
        assert resolution.patterns == ()

    def test_exact_beats_default(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_default(op, constant("default"))
        registry.register_with_args(op, [1, "Bob"], constant("exact"))
        resolution = registry.lookup(op.key, (1, "Bob"))
        assert resolution.kind is ResolutionKind.EXACT
        assert resolution.behavior(None) == "exact"
        assert resolution.patterns == ((1, "Bob"),)

    def test_default_carries_every_pattern(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_default(op, constant("default"))
        registry.register_with_args(op, [1, "Bob"], constant("a"))
        registry.register_with_args(op, [2, It.is_any()], constant("b"))
        resolution = registry.lookup(op.key, (3, "Carol"))
        assert resolution.kind is ResolutionKind.DEFAULT
        assert len(resolution.patterns) == 2

    def test_wildcard_pattern_found_from_live_call(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_with_args(op, [It.is_any(), "Bob"], constant("hit"))
        assert registry.lookup(op.key, (42, "Bob")).kind is ResolutionKind.EXACT
        assert registry.lookup(op.key, (42, "Carol")).kind is ResolutionKind.NONE

    def test_most_recent_pattern_wins(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_with_args(op, [It.is_any(), "Bob"], constant("first"))
        registry.register_with_args(op, [1, It.is_any()], constant("second"))
        assert registry.lookup(op.key, (1, "Bob")).behavior(None) == "second"

    def test_rejected_pattern_falls_back_to_older_one(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_with_args(op, [It.is_any(), "Bob"], constant("older"))
        registry.register_with_args(
            op, [It.is_any(lambda t: t > 10), It.is_any()], constant("newer")
        )
        resolution = registry.lookup(op.key, (5, "Bob"))
        assert resolution.kind is ResolutionKind.EXACT
        assert resolution.behavior(None) == "older"

    def test_reregistering_is_last_writer_wins(self, registry: BehaviorRegistry) -> None:
        op = _op("size")
        registry.register_default(op, constant(1))
        registry.register_default(op, constant(2))
        assert registry.lookup(op.key, ()).behavior(None) == 2

    def test_sequence(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_sequence(op, [1, "Bob"], ["a", "b"])
        resolution = registry.lookup(op.key, (1, "Bob"))
        assert resolution.kind is ResolutionKind.SEQUENCE
        assert resolution.key == "lookup(int,str)<>|1,'Bob'"
        assert len(resolution.sequence) == 2

    def test_sequence_predicate_must_accept(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        registry.register_sequence(op, [It.is_any(lambda t: t > 0), "Bob"], ["a"])
        assert registry.lookup(op.key, (1, "Bob")).kind is ResolutionKind.SEQUENCE
        assert registry.lookup(op.key, (-1, "Bob")).kind is ResolutionKind.NONE

    def test_default_beats_sequence(self, registry: BehaviorRegistry) -> None:
        op = _op("size")
        registry.register_sequence(op, [], [1, 2])
        registry.register_default(op, constant(9))
        assert registry.lookup(op.key, ()).kind is ResolutionKind.DEFAULT

    def test_has_patterns(self, registry: BehaviorRegistry) -> None:
        op = _op("lookup")
        assert not registry.has_patterns(op.key)
        registry.register_sequence(op, [1, "Bob"], ["a"])
        assert not registry.has_patterns(op.key)
        registry.register_with_args(op, [1, "Bob"], constant("x"))
        assert registry.has_patterns(op.key)

    def test_clear(self, registry: BehaviorRegistry) -> None:
        registry.register_default(_op("size"), constant(1))
        registry.register_property(_op("owner"), "ops")
        registry.clear()
        assert registry.lookup("size()<>", ()).kind is ResolutionKind.NONE
        assert registry.property_value("owner") == (False, None)


class TestBehaviorSequence:
    def test_take_in_order_then_none(self) -> None:
        sequence = BehaviorSequence([constant(1), constant(2)], ())
        assert sequence.take()(None) == 1
        assert sequence.take()(None) == 2
        assert sequence.take() is None
        assert len(sequence) == 0
