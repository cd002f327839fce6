"""Stub objects that record calls and answer them with a configured effect.

A :class:`Stub` behaves much like ``unittest.mock.Mock`` reduced to calls:

>>> stub = Stub([1, 2])
>>> stub("a"), stub("b")
(1, 2)
>>> stub.has_calls(Call("a"), Call("b"))
True

The effect decides the answer:

- an exception (instance or class) is raised;
- a list, tuple or iterator is consumed one item per call, each item being
  raised, called or returned by the rules above and below;
- any other callable is called with the same arguments;
- anything else is returned unchanged.

Without an effect every call returns a brand new ``Stub``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Callable

from .config import resolve_snapshot_args
from .exceptions import EffectExhaustedError
from .matching import Call, calls_match
from .snapshot import snapshot_arguments

_UNSET: Any = object()


class Effect:
    """Rule deciding what a stub returns or raises."""

    __slots__ = ()

    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ReturnValue(Effect):
    value: Any

    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class SideEffect(Effect):
    func: Callable[..., Any]

    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        return self.func(*args, **kwargs)


@dataclass(frozen=True, slots=True)
class Raise(Effect):
    error: BaseException | type[BaseException]

    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        raise self.error


class Sequence(Effect):
    """Consume one effect per call until the items run out."""

    def __init__(self, items: Any) -> None:
        if isinstance(items, Iterator):
            self._items: Iterator[Any] = items
        else:
            self._items = iter(tuple(items))

    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        try:
            item = next(self._items)
        except StopIteration:
            raise EffectExhaustedError(stub) from None
        return classify(item, nested=True).apply(stub, args, kwargs)

    def __repr__(self) -> str:
        return "Sequence(...)"


class DefaultEffect(Effect):
    def apply(self, stub: Stub, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        return Stub()

    def __repr__(self) -> str:
        return "DefaultEffect()"


def _is_exception(value: Any) -> bool:
    if isinstance(value, BaseException):
        return True
    return isinstance(value, type) and issubclass(value, BaseException)


def classify(value: Any, nested: bool = False) -> Effect:
    """Turn a user supplied effect value into an :class:`Effect`.

    Items taken from a sequence are classified with ``nested=True`` so that a
    list inside a list is returned as a value rather than consumed again.
    """
    if isinstance(value, Effect):
        return value
    if _is_exception(value):
        return Raise(value)
    if not nested and isinstance(value, (list, tuple, Iterator)):
        return Sequence(value)
    if callable(value):
        return SideEffect(value)
    return ReturnValue(value)


class Stub:
    """Callable test double recording every call it receives.

    Two stubs are never equal unless they are the same stub, even if they are
    configured identically.

    Attributes:
        id: Unique identifier used for equality and hashing.
        name: Optional label shown in the representation.
    """

    def __init__(
        self,
        effect: Any = _UNSET,
        *,
        return_value: Any = _UNSET,
        name: str | None = None,
        snapshot: bool | None = None,
    ) -> None:
        """Initialize the Stub.

        Args:
            effect: Effect value; see the module documentation.
            return_value: Value returned as-is on every call. Ignored when
                ``effect`` is given.
            name: Optional label for the representation.
            snapshot: Deep copy arguments before recording them. Defaults to
                the ``snapshot_args`` configuration.
        """
        self.id = uuid.uuid4().hex
        self.name = name
        if effect is not _UNSET:
            self._effect = classify(effect)
        elif return_value is not _UNSET:
            self._effect = ReturnValue(return_value)
        else:
            self._effect = DefaultEffect()
        self._snapshot = resolve_snapshot_args() if snapshot is None else snapshot
        self._calls: list[Call] = []

    @property
    def effect(self) -> Effect:
        return self._effect

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if self._snapshot:
            recorded_args, recorded_kwargs = snapshot_arguments(args, kwargs)
            self._calls.append(Call(*recorded_args, **recorded_kwargs))
        else:
            self._calls.append(Call(*args, **kwargs))
        return self._effect.apply(self, args, kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stub):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        if self.name:
            return f"Stub(name={self.name!r}, id={self.id})"
        return f"Stub(id={self.id})"

    @property
    def calls(self) -> tuple[Call, ...]:
        """The recorded calls, oldest first."""
        return tuple(self._calls)

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def called(self) -> bool:
        return bool(self._calls)

    @property
    def called_once(self) -> bool:
        return len(self._calls) == 1

    def called_with(self, *args: Any, **kwargs: Any) -> bool:
        """Return whether any recorded call matches the given arguments."""
        return self.has_call(Call(*args, **kwargs))

    def called_once_with(self, *args: Any, **kwargs: Any) -> bool:
        return self.called_once and self.called_with(*args, **kwargs)

    def last_called_with(self, *args: Any, **kwargs: Any) -> bool:
        """Return whether the most recent call matches the given arguments."""
        if not self._calls:
            return False
        return calls_match(Call(*args, **kwargs), self._calls[-1])

    def has_call(self, call: Call) -> bool:
        return any(calls_match(call, observed) for observed in self._calls)

    def has_calls(self, *calls: Call) -> bool:
        """Return whether ``calls`` occur contiguously and in order."""
        if not calls:
            return True
        window = len(calls)
        history = self._calls
        if window > len(history):
            return False
        for start in range(len(history) - window + 1):
            if all(
                calls_match(expected, observed)
                for expected, observed in zip(calls, history[start:start + window])
            ):
                return True
        return False

    def reset(self) -> Stub:
        """Clear the call history. The effect is left as it is."""
        self._calls.clear()
        return self
