"""Call records and the rules used to compare them."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping


class Predicate:
    """Expected value that matches when ``func(observed)`` is true.

    Use it wherever an exact value would be too strict:

    >>> stub(3)
    >>> stub.called_with(Predicate(lambda x: 0 < x < 5))
    True
    """

    __slots__ = ("func", "description")

    def __init__(self, func: Callable[[Any], bool], description: str | None = None) -> None:
        self.func = func
        self.description = description

    def __call__(self, value: Any) -> bool:
        return bool(self.func(value))

    def __repr__(self) -> str:
        if self.description is not None:
            return self.description
        name = getattr(self.func, "__qualname__", type(self.func).__qualname__)
        return f"Predicate({name})"


ANY = Predicate(lambda _value: True, "ANY")


def instance_of(*types: type) -> Predicate:
    """Return a predicate accepting instances of any of ``types``."""
    names = ", ".join(t.__qualname__ for t in types)
    return Predicate(lambda value: isinstance(value, types), f"instance_of({names})")


def values_match(expected: Any, observed: Any) -> bool:
    if isinstance(expected, Predicate):
        return expected(observed)
    if isinstance(observed, Predicate):
        return observed(expected)
    return bool(expected == observed)


class Call:
    """Immutable record of the arguments of one invocation."""

    __slots__ = ("_args", "_kwargs")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        object.__setattr__(self, "_args", args)
        object.__setattr__(self, "_kwargs", MappingProxyType(dict(kwargs)))

    @property
    def args(self) -> tuple[Any, ...]:
        return self._args

    @property
    def kwargs(self) -> Mapping[str, Any]:
        return self._kwargs

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Call records are immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Call):
            return NotImplemented
        return calls_match(self, other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        parts = [repr(arg) for arg in self._args]
        parts.extend(f"{key}={value!r}" for key, value in self._kwargs.items())
        return f"Call({', '.join(parts)})"


def calls_match(expected: Call, observed: Call) -> bool:
    """Return whether ``observed`` satisfies the pattern in ``expected``.

    Both calls need the same number of positional arguments and the same set
    of keyword names. Each pair of values must be equal, or one side must be a
    :class:`Predicate` that accepts the other.
    """
    if len(expected.args) != len(observed.args):
        return False
    if expected.kwargs.keys() != observed.kwargs.keys():
        return False
    for want, got in zip(expected.args, observed.args):
        if not values_match(want, got):
            return False
    for key, want in expected.kwargs.items():
        if not values_match(want, observed.kwargs[key]):
            return False
    return True
