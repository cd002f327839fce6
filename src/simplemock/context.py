"""Interception contexts: per-target hooks and the sessions that activate them.

A :class:`Context` owns one :class:`Dispatcher` per hooked callable. While a
session runs, the dispatcher replaces every reference to its callable (see
:mod:`simplemock.callsites`), so calls from anywhere in the session's call
tree reach it. For each call the dispatcher picks the most specific installed
:class:`Override`, asks the active :class:`~simplemock.metadata.Metadata`
whether to intercept, and then either calls the registered response or the
real callable.

Hooks accumulate: once installed in a context they stay installed, and later
sessions of the same context route the callable through the dispatcher even
when it is no longer registered. Such calls reach the real callable.
"""

from __future__ import annotations

import inspect
import logging
import sys
from types import MethodType, ModuleType
from typing import Any, Callable, Sequence

from .callsites import Slot, excluded_namespaces, find_slots, patch, restore
from .config import resolve_excluded_modules
from .exceptions import MockError
from .metadata import Metadata
from .signature import SignatureKey

logger = logging.getLogger(__name__)

_PACKAGE = __name__.partition(".")[0]


class Override:
    """One installed signature of a hooked callable."""

    __slots__ = ("key",)

    def __init__(self, key: SignatureKey) -> None:
        self.key = key

    @property
    def parameters(self) -> inspect.Signature:
        """Placeholder parameters implied by the signature's expanded types."""
        return self.key.parameters()

    def __repr__(self) -> str:
        return f"Override{self.key.parameters()}"


def _respond(response: Any, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    if callable(response):
        return response(*args, **kwargs)
    return response


class Dispatcher:
    """Stand-in for a hooked callable while a session is active.

    Attribute access falls through to the real callable, so the dispatcher
    keeps the callable's name, module and other metadata.
    """

    __slots__ = ("context", "target", "overrides", "_cache", "__wrapped__")

    def __init__(self, context: Context, target: Callable[..., Any]) -> None:
        self.context = context
        self.target = target
        self.__wrapped__ = target
        self.overrides: list[Override] = []
        self._cache: dict[tuple[type, ...], Override | None] = {}

    def install(self, key: SignatureKey) -> bool:
        if any(override.key == key for override in self.overrides):
            return False
        self.overrides.append(Override(key))
        self._cache.clear()
        return True

    def select(self, arg_types: tuple[type, ...]) -> Override | None:
        """Most specific installed override accepting ``arg_types``."""
        try:
            return self._cache[arg_types]
        except KeyError:
            pass
        best: Override | None = None
        for override in self.overrides:
            if not override.key.accepts(arg_types):
                continue
            if best is None or override.key.more_specific_than(best.key):
                best = override
        self._cache[arg_types] = best
        return best

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        metadata = self.context.metadata
        if metadata is None or metadata.busy:
            return self.target(*args, **kwargs)

        metadata.busy += 1
        try:
            arg_types = tuple(map(type, args))
            tracking = metadata.tracking
            if tracking:
                metadata.enter(self.target, arg_types)
            try:
                override = self.select(arg_types)
                if override is not None and metadata.should_intercept(override.key):
                    return _respond(metadata.response(override.key), args, kwargs)
                metadata.busy -= 1
                try:
                    return self.target(*args, **kwargs)
                finally:
                    metadata.busy += 1
            finally:
                if tracking:
                    metadata.exit()
        finally:
            metadata.busy -= 1

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return MethodType(self, instance)

    def __getattr__(self, name: str) -> Any:
        if name == "__wrapped__":
            raise AttributeError(name)
        return getattr(self.__wrapped__, name)

    def __repr__(self) -> str:
        return f"<Dispatcher for {self.target!r}>"


class Session:
    """An active run of a context; restores every patched call site on exit."""

    def __init__(
        self,
        context: Context,
        metadata: Metadata,
        root_function: Any,
        root_module: ModuleType | None,
    ) -> None:
        self.context = context
        self.metadata = metadata
        self.root_function = root_function
        self.root_module = root_module

    def __enter__(self) -> Session:
        self.context._activate(self.metadata, self.root_function, self.root_module)
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        self.context._deactivate()
        return False


class _Dispatchers(dict):
    """Dispatchers of a context by target id."""


class Context:
    """A reusable set of interception hooks.

    Attributes:
        name: Name under which the context is shared, or ``None``.
        metadata: The :class:`Metadata` of the running session, if any.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.metadata: Metadata | None = None
        self._dispatchers: dict[int, Dispatcher] = _Dispatchers()
        self._slots: dict[int, list[Slot]] = {}
        self._pending = False
        self._applied: list[tuple[Slot, Any, Any]] = []
        self._previous_profiler: Any = None
        logger.debug("Created %r", self)

    def __repr__(self) -> str:
        if self.name is None:
            return f"<Context anonymous at {id(self):#x}>"
        return f"<Context {self.name!r}>"

    @property
    def active(self) -> bool:
        return self.metadata is not None

    @property
    def needs_flush(self) -> bool:
        """Whether hooks were installed since the last :meth:`flush`."""
        return self._pending

    def dispatcher(self, target: Any) -> Dispatcher | None:
        return self._dispatchers.get(id(target))

    def overrides(self) -> list[Override]:
        """Every installed override, in installation order per callable."""
        return [override for d in self._dispatchers.values() for override in d.overrides]

    def has_override(self, key: SignatureKey) -> bool:
        dispatcher = self._dispatchers.get(id(key.target))
        return dispatcher is not None and any(o.key == key for o in dispatcher.overrides)

    def install(self, key: SignatureKey) -> bool:
        """Install a hook for ``key``; return ``False`` if it already existed."""
        dispatcher = self._dispatchers.get(id(key.target))
        if dispatcher is None:
            dispatcher = Dispatcher(self, key.target)
            self._dispatchers[id(key.target)] = dispatcher
        if not dispatcher.install(key):
            return False
        self._pending = True
        logger.debug("Installed hook for %r in %r", key, self)
        return True

    def flush(self) -> None:
        """Rebuild the call-site table of every hooked callable."""
        if self.active:
            raise MockError(f"Cannot flush {self!r} while it is active")
        excluded = excluded_namespaces((_PACKAGE, *resolve_excluded_modules()))
        self._slots = {
            target_id: find_slots(dispatcher.target, excluded)
            for target_id, dispatcher in self._dispatchers.items()
        }
        self._pending = False
        logger.debug(
            "Flushed %r: %d call sites for %d callables",
            self,
            sum(len(slots) for slots in self._slots.values()),
            len(self._slots),
        )

    def session(
        self,
        metadata: Metadata,
        root_function: Any = None,
        root_module: ModuleType | None = None,
    ) -> Session:
        return Session(self, metadata, root_function, root_module)

    def run(self, body: Callable[..., Any], responses: Sequence[Any], metadata: Metadata) -> Any:
        """Call ``body(*responses)`` with this context active."""
        root_module = sys.modules.get(getattr(body, "__module__", None) or "")
        with self.session(metadata, body, root_module):
            return body(*responses)

    def _activate(self, metadata: Metadata, root_function: Any, root_module: ModuleType | None) -> None:
        if self.active:
            raise MockError(f"{self!r} is already active")
        metadata.start(root_function, root_module)
        applied: list[tuple[Slot, Any, Any]] = []
        try:
            for target_id, dispatcher in self._dispatchers.items():
                applied.extend(patch(self._slots.get(target_id, ()), dispatcher))
        except BaseException:
            restore(applied)
            raise
        logger.debug("Activated %r: %d call sites patched", self, len(applied))
        self.metadata = metadata
        self._applied = applied
        if metadata.tracking:
            self._previous_profiler = sys.getprofile()
            sys.setprofile(metadata.profile)

    def _deactivate(self) -> None:
        metadata = self.metadata
        if metadata is None:
            return
        metadata.busy += 1
        try:
            if metadata.tracking:
                sys.setprofile(self._previous_profiler)
            restore(self._applied)
        finally:
            self._applied = []
            self._previous_profiler = None
            self.metadata = None
            metadata.busy -= 1
        logger.debug("Deactivated %r", self)
