"""Unit tests for mock() and mocking()."""

from __future__ import annotations

import math

import pytest

import sample_callers
from sample_callers import (
    Calculator,
    add,
    add_twice,
    floor_all,
    leaf,
    make_caller,
    outer,
    relay,
    scale,
    scale_by,
    tidy,
    total,
    upper_text,
    strip_text,
)
from simplemock import (
    Call,
    Exactly,
    MockError,
    NoTargetsError,
    SignatureError,
    Stub,
    VarArgs,
    get_context,
    mock,
    mocking,
    new_context,
)
from simplemock.registry import context_names
from simplemock.signature import SignatureKey


def test_mock_returns_body_result() -> None:
    assert mock(lambda stub: "done", leaf) == "done"


def test_bare_target_gets_default_stub() -> None:
    """Calls anywhere in the call tree reach the stub instead of the function."""

    def body(stub):
        assert isinstance(leaf(1), Stub)
        assert isinstance(relay(2), Stub)
        assert isinstance(outer(3), Stub)
        return stub

    stub = mock(body, leaf)
    assert stub.call_count == 3
    assert stub.has_calls(Call(1), Call(2), Call(3))
    assert [call.args for call in stub.calls] == [(1,), (2,), (3,)]


def test_call_sites_restored_after_mock() -> None:
    original = sample_callers.leaf
    mock(lambda stub: relay(1), leaf)
    assert sample_callers.leaf is original
    assert leaf is original
    assert relay(4) == 4


def test_call_sites_restored_when_body_raises() -> None:
    original = sample_callers.leaf

    def body(stub):
        relay(1)
        raise RuntimeError("body failed")

    with pytest.raises(RuntimeError, match="body failed"):
        mock(body, leaf)
    assert sample_callers.leaf is original
    assert relay(5) == 5


def test_response_errors_propagate() -> None:
    def body(stub):
        return outer(1)

    with pytest.raises(ValueError, match="bad"):
        mock(body, {leaf: Stub(ValueError("bad"))})


def test_typed_signature_only_intercepts_matching_calls() -> None:
    """A float-only override leaves integer calls to the real function."""

    def body(stub):
        assert add(1, 2) == 3
        assert add(1.0, 2.0) == 6.0
        return stub

    stub = mock(body, {(add, float, float): Stub(lambda a, b: 2 * a + 2 * b)})
    assert stub.called_once_with(1.0, 2.0)


def test_disjoint_signatures_of_one_function() -> None:
    def body(ints, strings):
        assert add(1, 2) == "ints"
        assert add("a", "b") == "strings"
        assert add(1.5, 1.0) == 2.5
        return ints, strings

    ints, strings = mock(
        body,
        {(add, int, int): Stub(return_value="ints"), (add, str, str): Stub(return_value="strings")},
    )
    assert ints.called_once_with(1, 2)
    assert strings.called_once_with("a", "b")


def test_most_specific_signature_wins() -> None:
    def body(*responses):
        assert add(1, 2) == "ints"
        assert add("a", 1) == "objects"
        assert add(1) == "any"
        assert add() == "any"

    mock(
        body,
        {
            (add, VarArgs(object)): "any",
            (add, int, int): "ints",
            (add, object, object): "objects",
        },
    )


def test_exactly_and_varargs() -> None:
    def body(pair, ints):
        assert total(1, 2) == "pair"
        assert total(1, 2, 3) == "ints"
        assert total() == "ints"
        assert total(1.5) == 1.5
        return pair, ints

    pair, ints = mock(
        body,
        {(total, Exactly(int, 2)): Stub(return_value="pair"), (total, VarArgs(int)): Stub(return_value="ints")},
    )
    assert pair.call_count == 1
    assert ints.call_count == 2


def test_fixed_values_and_plain_functions_as_responses() -> None:
    def body(value, function):
        assert leaf(1) == 10
        assert add(2, 3) == -1
        return value, function

    replacement = lambda a, b: -1  # noqa: E731
    value, function = mock(body, {leaf: 10}, {add: replacement})
    assert value == 10
    assert function is replacement


def test_responses_passed_in_declaration_order() -> None:
    first = Stub(name="first")
    second = Stub(name="second")

    def body(*responses):
        return responses

    responses = mock(body, {leaf: first}, add, {relay: second})
    assert responses[0] is first
    assert isinstance(responses[1], Stub)
    assert responses[2] is second


def test_duplicate_registration_last_write_wins() -> None:
    def body(first, second):
        return add(1, 2)

    assert mock(body, "duplicates", {(add, int, int): "first"}, {(add, int, int): "second"}) == "second"
    context, _created = get_context("duplicates")
    assert len(context.overrides()) == 1


def test_keywords_forwarded_on_fall_through() -> None:
    def body(stub):
        assert scale(2, factor=3) == 6
        assert scale("ab", factor=2) == "mocked"
        return stub

    stub = mock(body, {(scale, str): Stub(return_value="mocked")})
    assert stub.called_once_with("ab", factor=2)


def test_keywords_forwarded_for_unregistered_targets() -> None:
    def first(stub):
        return scale_by(2, 5)

    def second(stub):
        assert scale_by(2, 5) == 10
        return leaf(1)

    assert mock(first, "keywords", {scale: "mocked"}) == "mocked"
    assert isinstance(mock(second, "keywords", leaf), Stub)


def test_active_context_is_left_untouched() -> None:
    """A nested mock() on the running context fails before hooking anything."""
    context = new_context()

    def body(stub):
        with pytest.raises(MockError):
            mock(lambda inner: None, {(add, int, int): "inner"}, context=context)
        assert len(context.overrides()) == 1
        return add(1, 2)

    assert mock(body, {add: "outer"}, context=context) == "outer"
    assert not context.active


def test_no_targets() -> None:
    with pytest.raises(NoTargetsError):
        mock(lambda: None)
    with pytest.raises(ValueError, match="At least one function must be mocked"):
        mock(lambda: None, "never-created")
    assert "never-created" not in context_names()


def test_invalid_targets() -> None:
    with pytest.raises(SignatureError):
        mock(lambda stub: None, 42)
    with pytest.raises(SignatureError):
        mock(lambda stub: None, ())
    with pytest.raises(TypeError):
        mock(lambda stub: None, "name", leaf, context="other")


def test_builtin_target() -> None:
    def body(stub):
        assert floor_all([1.5, 2]) == [-1, 2]
        return stub

    stub = mock(body, {(math.floor, float): Stub(return_value=-1)})
    assert stub.called_once_with(1.5)
    assert math.floor(1.5) == 1


def test_method_target() -> None:
    calculator = Calculator(offset=1)

    def body(stub):
        assert calculator.add(1, 2) == 0
        assert calculator.add_all([1, 2, 3]) == 0
        return stub

    stub = mock(body, {Calculator.add: Stub(return_value=0)})
    assert stub.call_count == 4
    assert stub.calls[0].args == (calculator, 1, 2)
    assert calculator.add(1, 2) == 4


def test_bound_methods_are_rejected() -> None:
    """Each attribute lookup builds a new bound method, so none could be hooked."""
    calculator = Calculator()
    with pytest.raises(SignatureError, match="Calculator.add"):
        mock(lambda stub: calculator.add(1, 2), calculator.add)
    with pytest.raises(SignatureError):
        mock(lambda stub: None, {(calculator.add, int, int): 0})
    with pytest.raises(SignatureError):
        mock(lambda stub: None, [].append)
    assert calculator.add(1, 2) == 3


def test_method_signature_includes_instance_type() -> None:
    calculator = Calculator()

    def body(stub):
        assert calculator.add(1, 2) == 3
        assert calculator.add(1.0, 2.0) == "floats"

    mock(body, {(Calculator.add, Calculator, float, float): "floats"})


def test_static_and_class_methods() -> None:
    def body(halve, zero):
        assert Calculator.halve(4) == "half"
        assert Calculator().halve(4) == "half"
        assert Calculator.zero() == "zero"
        return halve, zero

    halve, zero = mock(body, {Calculator.halve: Stub(return_value="half")}, {Calculator.zero: Stub(return_value="zero")})
    assert halve.call_count == 2
    assert zero.called_once_with(Calculator)
    assert Calculator.halve(4) == 2
    assert isinstance(Calculator.zero(), Calculator)


def test_instance_attribute_target() -> None:
    holder = Calculator()
    holder.callback = leaf

    def body(stub):
        return holder.callback(3)

    assert mock(body, {leaf: "stubbed"}) == "stubbed"
    assert holder.callback is leaf


def test_closure_target() -> None:
    call = make_caller()

    def body(stub):
        return call(7)

    assert mock(body, {leaf: "stubbed"}) == "stubbed"
    assert call(7) == 7


def test_response_runs_unintercepted() -> None:
    """A response calling its own target reaches the real function."""

    def body(stub):
        return add(1, 2)

    assert mock(body, {add: lambda a, b: add(a, b) * 10}) == 30


def test_nested_mock_of_other_targets() -> None:
    def inner(upper):
        return tidy("  text  ")

    def body(strip):
        return mock(inner, {upper_text: lambda text: text + "!"})

    assert mock(body, {strip_text: lambda text: "x"}) == "x!"


def test_nested_mock_of_same_target() -> None:
    """The inner mock wins while it runs; calls it declines reach the outer mock."""
    context = new_context()

    def inner(stub):
        (override,) = context.overrides()
        assert context.dispatcher(override.key.target).target is override.key.target
        return relay("a"), relay(1)

    def body(stub):
        assert mock(inner, {(leaf, str): "inner"}) == ("inner", "outer")
        return relay("a")

    assert mock(body, {leaf: "outer"}, context=context) == "outer"
    assert relay("a") == "a"


def test_reused_context_falls_through_for_unregistered_targets() -> None:
    """Hooks persist in a named context, but only registered keys are mocked."""

    def first(strip):
        return tidy("  a  ")

    def second(upper):
        return tidy("  a  ")

    assert mock(first, "reuse", {strip_text: lambda text: "b"}) == "B"
    assert mock(second, "reuse", {upper_text: lambda text: "upper"}) == "upper"

    context, created = get_context("reuse")
    assert not created
    assert context.has_override(SignatureKey.any_args(strip_text))
    assert context.has_override(SignatureKey.any_args(upper_text))
    assert tidy("  a  ") == "A"


def test_named_context_via_keyword() -> None:
    mock(lambda stub: leaf(1), leaf, context="keyword")
    assert "keyword" in context_names()


def test_anonymous_contexts_are_not_shared() -> None:
    before = context_names()
    mock(lambda stub: leaf(1), leaf)
    assert context_names() == before


def test_mocking_context_manager() -> None:
    with mocking(leaf, {(add, int, int): 0}) as (stub, zero):
        assert isinstance(relay(1), Stub)
        assert add(1, 2) == 0
        assert zero == 0
    assert stub.called_once_with(1)
    assert relay(1) == 1
    assert add(1, 2) == 3


def test_mocking_restores_on_error() -> None:
    with pytest.raises(KeyError):
        with mocking(leaf):
            raise KeyError("stop")
    assert relay(2) == 2


def test_add_twice_counts_each_call() -> None:
    def body(stub):
        return add_twice(1, 1)

    stub = Stub([1, 2])
    assert mock(body, {add: stub}) == 3
    assert stub.call_count == 2
