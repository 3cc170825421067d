"""Tests for understudy.signature."""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from understudy.contract import (
    OperationDescriptor,
    OperationKind,
    ParameterDescriptor,
    ParameterKind,
)
from understudy.matcher import It
from understudy.signature import (
    ANY_TOKEN,
    composite_key,
    fingerprint_of,
    render_type,
    render_value,
    signature_of,
)

T = TypeVar("T")


class Account:
    pass


def _method(
    name: str, *params: ParameterDescriptor, generic_args: tuple[str, ...] = ()
) -> OperationDescriptor:
    return OperationDescriptor(
        name=name,
        kind=OperationKind.METHOD,
        parameters=params,
        generic_args=generic_args,
    )


class TestRenderType:
    def test_builtins_use_short_names(self) -> None:
        assert render_type(int) == "int"
        assert render_type(str) == "str"

    def test_user_types_are_qualified(self) -> None:
        assert render_type(Account) == f"{__name__}.Account"

    def test_special_forms(self) -> None:
        assert render_type(Any) == "Any"
        assert render_type(None) == "None"
        assert render_type(type(None)) == "None"
        assert render_type(T) == "T"

    def test_generic_aliases(self) -> None:
        assert render_type(list[int]) == "list[int]"
        assert render_type(Optional[int]) == "Optional[int]"

    def test_unresolved_string_annotation(self) -> None:
        assert render_type("LocalType") == "LocalType"


class TestSignatureOf:
    def test_method_signature(self) -> None:
        op = _method(
            "greet",
            ParameterDescriptor("name", str),
            ParameterDescriptor("times", int),
        )
        assert signature_of(op) == "greet(str,int)<>"
        assert op.key == "greet(str,int)<>"

    def test_kind_markers(self) -> None:
        op = _method(
            "find",
            ParameterDescriptor("terms", str, ParameterKind.VAR_POSITIONAL),
            ParameterDescriptor("exact", bool, ParameterKind.KEYWORD_ONLY),
            ParameterDescriptor("options", Any, ParameterKind.VAR_KEYWORD),
        )
        assert op.key == "find(*str,kw:bool,**Any)<>"

    def test_generic_args(self) -> None:
        op = _method("convert", ParameterDescriptor("value", T), generic_args=("T",))
        assert op.key == "convert(T)<T>"

    def test_overloads_differ_by_parameter_type(self) -> None:
        by_int = _method("load", ParameterDescriptor("key", int))
        by_str = _method("load", ParameterDescriptor("key", str))
        assert by_int.key != by_str.key

    def test_property_signature(self) -> None:
        op = OperationDescriptor(name="balance", kind=OperationKind.PROPERTY)
        assert op.key == "balance{get}"

    def test_deterministic(self) -> None:
        a = _method("greet", ParameterDescriptor("name", str))
        b = _method("greet", ParameterDescriptor("name", str))
        assert signature_of(a) == signature_of(b)


class TestFingerprint:
    def test_literals_render_as_repr(self) -> None:
        assert fingerprint_of((5, "Bob")) == "5,'Bob'"

    def test_matchers_render_as_wildcard(self) -> None:
        assert fingerprint_of((It.is_any(), "Bob")) == f"{ANY_TOKEN},'Bob'"

    def test_live_call_uses_actual_values_at_literal_positions(self) -> None:
        expected = (It.is_any(), "Bob")
        assert fingerprint_of((5, "Carol"), expected) == f"{ANY_TOKEN},'Carol'"
        assert fingerprint_of((7, "Bob"), expected) == fingerprint_of(expected)

    def test_commas_inside_values_do_not_collide(self) -> None:
        assert fingerprint_of(("a,b",)) != fingerprint_of(("a", "b"))

    def test_wildcard_token_differs_from_literal_text(self) -> None:
        assert render_value(ANY_TOKEN) != ANY_TOKEN

    def test_empty(self) -> None:
        assert fingerprint_of(()) == ""


class TestCompositeKey:
    def test_joins_with_bar(self) -> None:
        assert composite_key("greet(str)<>", "'Bob'") == "greet(str)<>|'Bob'"
