"""Signature keys: a callable plus the positional argument types it is mocked for."""

from __future__ import annotations

import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .exceptions import SignatureError


@dataclass(frozen=True)
class VarArgs:
    """Zero or more trailing positional arguments of ``type``."""

    type: Any = object


@dataclass(frozen=True)
class Exactly:
    """Exactly ``count`` positional arguments of ``type``."""

    type: Any
    count: int

    def __post_init__(self) -> None:
        if not isinstance(self.count, int) or isinstance(self.count, bool) or self.count < 0:
            raise SignatureError(f"Exactly() needs a non-negative count, got {self.count!r}")


def _normalize_type(declared: Any) -> Any:
    if declared is typing.Any:
        return object
    if isinstance(declared, type):
        return declared
    if isinstance(declared, types.UnionType):
        return declared
    if (
        isinstance(declared, tuple)
        and declared
        and all(isinstance(member, type) for member in declared)
    ):
        return declared
    raise SignatureError(f"Not a usable argument type: {declared!r}")


def _members(declared: Any) -> tuple[Any, ...]:
    if isinstance(declared, types.UnionType):
        return typing.get_args(declared)
    if isinstance(declared, tuple):
        return declared
    return (declared,)


def _narrower(a: Any, b: Any) -> bool:
    """Whether every type accepted by ``a`` is accepted by ``b``."""
    if a == b or b is object:
        return True
    return all(isinstance(member, type) and issubclass(member, b) for member in _members(a))


def _callable_name(target: Any) -> str:
    return getattr(target, "__qualname__", None) or getattr(target, "__name__", None) or repr(target)


def _type_name(declared: Any) -> str:
    if isinstance(declared, type):
        return declared.__qualname__
    if isinstance(declared, tuple):
        return " | ".join(_type_name(member) for member in declared)
    return repr(declared)


class SignatureKey:
    """A target callable and its expanded declared positional types.

    ``Exactly(T, n)`` entries are expanded into ``n`` copies of ``T`` so that
    ``(f, Exactly(int, 2))`` and ``(f, int, int)`` are the same key. A trailing
    :class:`VarArgs` is kept as ``rest``. Keys compare the target by identity.
    """

    __slots__ = ("target", "params", "rest")

    def __init__(self, target: Callable[..., Any], params: tuple[Any, ...], rest: VarArgs | None) -> None:
        self.target = target
        self.params = params
        self.rest = rest

    @classmethod
    def declare(cls, target: Any, *declared: Any) -> SignatureKey:
        """Build a key from a declaration such as ``(f, int, VarArgs(str))``."""
        if not callable(target):
            raise SignatureError(f"Mock target must be callable, got {target!r}")
        params: list[Any] = []
        rest: VarArgs | None = None
        for entry in declared:
            if rest is not None:
                raise SignatureError("VarArgs() is only allowed as the last entry")
            if isinstance(entry, VarArgs):
                rest = VarArgs(_normalize_type(entry.type))
            elif isinstance(entry, Exactly):
                params.extend([_normalize_type(entry.type)] * entry.count)
            else:
                params.append(_normalize_type(entry))
        return cls(target, tuple(params), rest)

    @classmethod
    def any_args(cls, target: Any) -> SignatureKey:
        """Key accepting any number of arguments of any type."""
        return cls.declare(target, VarArgs(object))

    @property
    def variadic(self) -> bool:
        return self.rest is not None

    def accepts(self, arg_types: tuple[type, ...]) -> bool:
        count = len(self.params)
        if len(arg_types) < count:
            return False
        if self.rest is None and len(arg_types) != count:
            return False
        for observed, declared in zip(arg_types, self.params):
            if not issubclass(observed, declared):
                return False
        if self.rest is not None:
            for observed in arg_types[count:]:
                if not issubclass(observed, self.rest.type):
                    return False
        return True

    def more_specific_than(self, other: SignatureKey) -> bool:
        """Ordering used when several signatures accept the same call.

        Fixed arity beats variable arity, a longer fixed prefix beats a shorter
        one, and otherwise a key wins when each of its types is a subclass of
        the other's and at least one differs.
        """
        if self.variadic != other.variadic:
            return not self.variadic
        if len(self.params) != len(other.params):
            return len(self.params) > len(other.params)
        mine = list(self.params)
        theirs = list(other.params)
        if self.rest is not None and other.rest is not None:
            mine.append(self.rest.type)
            theirs.append(other.rest.type)
        if mine == theirs:
            return False
        return all(_narrower(a, b) for a, b in zip(mine, theirs))

    def parameters(self) -> inspect.Signature:
        """Placeholder parameter list implied by the expanded types."""
        params = [
            inspect.Parameter(f"arg{index}", inspect.Parameter.POSITIONAL_ONLY, annotation=declared)
            for index, declared in enumerate(self.params)
        ]
        if self.rest is not None:
            params.append(
                inspect.Parameter("rest", inspect.Parameter.VAR_POSITIONAL, annotation=self.rest.type)
            )
        params.append(inspect.Parameter("kwargs", inspect.Parameter.VAR_KEYWORD))
        return inspect.Signature(params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignatureKey):
            return NotImplemented
        return self.target is other.target and self.params == other.params and self.rest == other.rest

    def __hash__(self) -> int:
        return hash((id(self.target), self.params, self.rest))

    def __repr__(self) -> str:
        parts = [_callable_name(self.target)]
        parts.extend(_type_name(declared) for declared in self.params)
        if self.rest is not None:
            parts.append(f"*{_type_name(self.rest.type)}")
        return f"SignatureKey({', '.join(parts)})"


def most_specific(keys: Iterable[SignatureKey]) -> SignatureKey | None:
    """Pick the most specific key; earlier keys win ties."""
    best: SignatureKey | None = None
    for key in keys:
        if best is None or key.more_specific_than(best):
            best = key
    return best
