"""Entry points: ``mock()`` and the ``mocking()`` context manager.

.. code-block:: python

    def test_retry():
        def body(fetch_stub):
            assert download("x") == b"ok"
            assert fetch_stub.call_count == 2

        mock(body, {fetch: Stub([ConnectionError, b"ok"])})

Targets are declared as:

- a callable, mocked for any arguments by a new :class:`Stub`;
- a tuple ``(callable, *types)``, mocked only for calls whose positional
  argument types fit ``types`` (see :class:`VarArgs` and :class:`Exactly`);
- a dict mapping either of the above to a response, which may be any
  callable or a fixed value.

The responses are passed to the body positionally, in declaration order.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from types import BuiltinMethodType, MethodType, ModuleType
from typing import Any, Callable, Iterable

from .config import resolve_rescan
from .context import Context, Session
from .exceptions import MockError, NoTargetsError, SignatureError
from .metadata import Metadata, function_of, module_of
from .registry import get_context, new_context
from .signature import SignatureKey

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _unbind(target: Any) -> Any:
    """Class methods are hooked through their underlying function.

    Methods bound to an instance are rejected: every attribute lookup creates
    a new bound method, so the declared one would never be called.
    """
    owner = getattr(target, "__self__", None)
    func = getattr(target, "__func__", None)
    if isinstance(owner, type) and func is not None:
        for klass in owner.__mro__:
            declared = vars(klass).get(func.__name__)
            if isinstance(declared, classmethod) and declared.__func__ is func:
                return func
    if isinstance(target, (MethodType, BuiltinMethodType)) and owner is not None:
        if not isinstance(owner, (type, ModuleType)):
            raise SignatureError(
                f"Cannot mock the bound method {target!r}; "
                f"mock {type(owner).__name__}.{target.__name__} instead"
            )
    return target


def _declare(target: Any) -> SignatureKey:
    if isinstance(target, tuple):
        if not target:
            raise SignatureError("A target declaration needs at least a callable")
        return SignatureKey.declare(_unbind(target[0]), *target[1:])
    if callable(target):
        return SignatureKey.any_args(_unbind(target))
    raise SignatureError(f"Cannot mock {target!r}")


def _declarations(targets: Iterable[Any]) -> list[tuple[SignatureKey, Any]]:
    declarations: list[tuple[SignatureKey, Any]] = []
    for target in targets:
        if isinstance(target, Mapping):
            declarations.extend((_declare(declared), response) for declared, response in target.items())
        else:
            declarations.append((_declare(target), _UNSET))
    return declarations


def _split_name(targets: tuple[Any, ...], context: str | Context | None) -> tuple[Any, tuple[Any, ...]]:
    if targets and isinstance(targets[0], str):
        if context is not None:
            raise TypeError("Context given both positionally and as context=")
        return targets[0], targets[1:]
    return context, targets


def _resolve_context(context: str | Context | None) -> Context:
    if context is None:
        return new_context()
    if isinstance(context, Context):
        return context
    if isinstance(context, str):
        return get_context(context)[0]
    raise TypeError(f"context must be a name or a Context, got {context!r}")


def _prepare(
    targets: tuple[Any, ...],
    context: str | Context | None,
    filters: Iterable[Callable[[Metadata], bool]],
) -> tuple[Context, Metadata, tuple[Any, ...]]:
    context, targets = _split_name(targets, context)
    declarations = _declarations(targets)
    if not declarations:
        raise NoTargetsError()
    filters = list(filters)
    for accept in filters:
        if not callable(accept):
            raise TypeError(f"Filters must be callable, got {accept!r}")

    resolved = _resolve_context(context)
    if resolved.active:
        raise MockError(f"{resolved!r} is already active")
    metadata = Metadata(filters=filters)
    responses = tuple(
        metadata.register(key) if response is _UNSET else metadata.register(key, response)
        for key, response in declarations
    )
    installed = sum(resolved.install(key) for key, _response in declarations)
    if resolved.needs_flush or resolve_rescan() == "always":
        resolved.flush()
    elif installed == 0:
        logger.debug("Reusing hooks of %r", resolved)
    return resolved, metadata, responses


def mock(
    body: Callable[..., Any],
    *targets: Any,
    context: str | Context | None = None,
    filters: Iterable[Callable[[Metadata], bool]] = (),
) -> Any:
    """Run ``body`` with the declared targets intercepted and return its result.

    Args:
        body: Called with one response per declared target.
        *targets: Target declarations; a leading string names the context.
        context: Name or :class:`Context` to reuse. By default a new anonymous
            context is used.
        filters: Predicates over the call tree that must all accept before a
            call is intercepted; see :mod:`simplemock.filters`.

    Raises:
        NoTargetsError: If nothing was declared.
    """
    resolved, metadata, responses = _prepare(targets, context, filters)
    return resolved.run(body, responses, metadata)


class _Mocking:
    def __init__(self, session: Session, responses: tuple[Any, ...]) -> None:
        self._session = session
        self._responses = responses

    def __enter__(self) -> tuple[Any, ...]:
        self._session.__enter__()
        return self._responses

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        return self._session.__exit__(exc_type, exc, tb)


def mocking(
    *targets: Any,
    context: str | Context | None = None,
    filters: Iterable[Callable[[Metadata], bool]] = (),
) -> _Mocking:
    """Context manager form of :func:`mock`.

    .. code-block:: python

        with mocking(fetch) as (fetch_stub,):
            download("x")
        assert fetch_stub.called_once
    """
    resolved, metadata, responses = _prepare(targets, context, filters)
    frame = sys._getframe(1)
    try:
        session = resolved.session(metadata, function_of(frame), module_of(frame))
    finally:
        del frame
    return _Mocking(session, responses)
