"""Unit tests for Metadata registry and tracking."""

from __future__ import annotations

import functools
import math

import pytest

import sample_callers
from sample_callers import add, leaf
from simplemock import InterceptionLookupError, Metadata, MockError, Stub, VarArgs
from simplemock.metadata import owning_module
from simplemock.signature import SignatureKey


@functools.singledispatch
def describe(value):
    return "value"


@describe.register
def _(value: int):
    return "int"


def test_register_defaults_to_new_stub() -> None:
    metadata = Metadata()
    key = SignatureKey.any_args(leaf)
    response = metadata.register(key)
    assert isinstance(response, Stub)
    assert metadata.response(key) is response
    assert metadata.methods == frozenset({key})


def test_register_is_last_write_wins() -> None:
    key = SignatureKey.declare(add, int, int)
    metadata = Metadata([(key, "first")])
    metadata.register(SignatureKey.declare(add, int, int), "second")
    assert metadata.response(key) == "second"
    assert len(metadata.mocks) == 1
    assert metadata.methods == frozenset(metadata.mocks)


def test_lookup_prefers_most_specific() -> None:
    metadata = Metadata(
        [
            (SignatureKey.declare(add, VarArgs(object)), "any"),
            (SignatureKey.declare(add, int, int), "ints"),
            (SignatureKey.declare(add, object, object), "objects"),
        ]
    )
    assert metadata.lookup(add, (int, int)) == "ints"
    assert metadata.lookup(add, (str, int)) == "objects"
    assert metadata.lookup(add, (int,)) == "any"
    assert metadata.lookup(leaf, (int,)) is None


def test_response_of_unregistered_key() -> None:
    metadata = Metadata()
    with pytest.raises(InterceptionLookupError) as excinfo:
        metadata.response(SignatureKey.any_args(leaf))
    assert isinstance(excinfo.value, KeyError)
    assert "leaf" in str(excinfo.value)


def test_should_intercept_requires_registration_and_filters() -> None:
    key = SignatureKey.any_args(leaf)
    metadata = Metadata([(key, 1)])
    assert metadata.should_intercept(key)
    assert not metadata.should_intercept(SignatureKey.any_args(add))

    metadata.filters.append(lambda m: m.current_depth() > 0)
    assert not metadata.should_intercept(key)
    metadata.enter(leaf, (int,))
    assert metadata.should_intercept(key)


def test_tracking_only_with_filters() -> None:
    assert not Metadata().tracking
    assert Metadata(filters=[lambda m: True]).tracking


def test_enter_and_exit_track_caller() -> None:
    metadata = Metadata()
    metadata.start("root", None)
    assert metadata.current_depth() == 0
    assert metadata.current_function() is None

    metadata.enter(sample_callers.relay, (int,))
    metadata.enter(leaf, (int,))
    assert metadata.current_depth() == 2
    assert metadata.current_function() is sample_callers.relay
    assert metadata.current_module() is sample_callers

    metadata.exit()
    metadata.exit()
    assert metadata.current_depth() == 0
    with pytest.raises(MockError):
        metadata.exit()


def test_owning_module_of_builtins() -> None:
    assert owning_module(math.floor) is math
    assert owning_module(str.upper) is __import__("builtins")


def test_owning_module_of_singledispatch() -> None:
    assert owning_module(describe, (int,)).__name__ == __name__
    assert owning_module(describe, (int,)) is owning_module(describe)
