"""Unit tests for call records and matching."""

from __future__ import annotations

import pytest

from simplemock import ANY, Call, Predicate, instance_of
from simplemock.matching import calls_match


def test_call_exposes_arguments() -> None:
    call = Call(1, "a", x=2)
    assert call.args == (1, "a")
    assert dict(call.kwargs) == {"x": 2}
    assert repr(call) == "Call(1, 'a', x=2)"


def test_call_is_immutable() -> None:
    call = Call(1, x=2)
    with pytest.raises(AttributeError):
        call.extra = 1
    with pytest.raises(TypeError):
        call.kwargs["x"] = 3  # type: ignore[index]


def test_call_is_unhashable() -> None:
    with pytest.raises(TypeError):
        hash(Call())


def test_positional_count_must_match() -> None:
    assert not calls_match(Call(1), Call(1, 2))
    assert not calls_match(Call(1, 2), Call(1))


def test_keyword_names_must_match() -> None:
    assert calls_match(Call(a=1, b=2), Call(b=2, a=1))
    assert not calls_match(Call(a=1), Call(b=1))
    assert not calls_match(Call(a=1), Call(a=1, b=2))


def test_values_compared_with_equality() -> None:
    assert calls_match(Call(1.0, [1]), Call(1, [1]))
    assert not calls_match(Call(1), Call(2))


def test_predicate_on_expected_side() -> None:
    in_range = Predicate(lambda x: 0 < x < 5)
    assert calls_match(Call(in_range), Call(3))
    assert not calls_match(Call(in_range), Call(7))
    assert Call(in_range) == Call(3)


def test_predicate_on_observed_side() -> None:
    assert Call(3) == Call(instance_of(int))


def test_any_and_instance_of() -> None:
    assert ANY(None)
    assert instance_of(int, str)("x")
    assert not instance_of(int)("x")
    assert repr(ANY) == "ANY"
    assert repr(instance_of(int, str)) == "instance_of(int, str)"
