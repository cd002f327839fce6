"""Per-invocation interception state: registered responses, filters and call stacks.

A :class:`Metadata` instance is created for every ``mock()`` call. It answers
two questions for the hooks installed by a context:

- is this signature registered right now, and do all filters accept?
- who is calling, from which module, and how deep in the call tree?

The second question is answered by the function and module stacks. They hold
a root entry plus one entry per call that is currently executing underneath
the mocked body. "Current" refers to the caller of the call being decided,
not the callee:

.. code-block:: python

    def f(x):
        return x

    def g(x):
        return f(x)

When the call to ``f`` is checked, ``current_function()`` is ``g``.
"""

from __future__ import annotations

import os
import sys
from types import FrameType, ModuleType
from typing import Any, Callable, Iterable

from .exceptions import InterceptionLookupError, MockError
from .signature import SignatureKey, most_specific
from .stub import Stub

_UNSET: Any = object()

LIBRARY_ROOT = os.path.dirname(os.path.abspath(__file__)) + os.sep
_library_files: dict[str, bool] = {}


def is_library_code(code: Any) -> bool:
    """Return whether ``code`` belongs to this package."""
    filename = code.co_filename
    known = _library_files.get(filename)
    if known is None:
        known = os.path.abspath(filename).startswith(LIBRARY_ROOT)
        _library_files[filename] = known
    return known


def module_of(frame: FrameType) -> ModuleType | None:
    return sys.modules.get(frame.f_globals.get("__name__"))


def function_of(frame: FrameType) -> Any:
    """Best effort lookup of the function object running in ``frame``.

    Falls back to the code object when the function cannot be found from the
    frame's globals (closures, lambdas).
    """
    code = frame.f_code
    candidate = frame.f_globals.get(code.co_name)
    wrapped = getattr(candidate, "__wrapped__", None)
    if getattr(wrapped, "__code__", None) is code:
        return wrapped
    if getattr(candidate, "__code__", None) is code:
        return candidate

    qualname = getattr(code, "co_qualname", None)
    if qualname and "<" not in qualname and "." in qualname:
        head, *rest = qualname.split(".")
        obj = frame.f_globals.get(head)
        for part in rest:
            if obj is None:
                break
            obj = getattr(obj, part, None)
        obj = getattr(obj, "__func__", obj)
        if getattr(obj, "__code__", None) is code:
            return obj
    return code


def owning_module(function: Any, arg_types: tuple[type, ...] = ()) -> ModuleType | None:
    """Module that owns ``function`` when called with ``arg_types``.

    For ``functools.singledispatch`` functions this is the module of the
    implementation selected for the first argument type.
    """
    dispatch = getattr(function, "dispatch", None)
    if arg_types and callable(dispatch) and hasattr(function, "registry"):
        try:
            function = dispatch(arg_types[0])
        except (TypeError, RuntimeError):
            pass

    name = getattr(function, "__module__", None)
    if not isinstance(name, str):
        owner = getattr(function, "__objclass__", None)
        if owner is None:
            bound = getattr(function, "__self__", None)
            if isinstance(bound, ModuleType):
                return bound
            owner = bound if isinstance(bound, type) else type(bound)
        name = getattr(owner, "__module__", None)
    if not isinstance(name, str):
        return None
    return sys.modules.get(name)


class _Mocks(dict):
    """Mapping of signature keys to responses."""


class Metadata:
    """Container for mocks and bookkeeping data.

    All filter functions take a single argument of this type.

    Attributes:
        mocks: Registered responses by :class:`SignatureKey`.
        methods: The registered keys, always equal to ``set(mocks)``.
        filters: Predicates that must all accept before a call is mocked.
        funcs: Function stack, root entry first.
        mods: Module stack, parallel to ``funcs``.
        busy: Non-zero while library code runs on behalf of a hook; hooks and
            the tracker ignore calls made in the meantime.
    """

    def __init__(
        self,
        mocks: Iterable[tuple[SignatureKey, Any]] = (),
        filters: Iterable[Callable[[Metadata], bool]] = (),
    ) -> None:
        self.mocks: dict[SignatureKey, Any] = _Mocks()
        self.methods: frozenset[SignatureKey] = frozenset()
        for key, response in mocks:
            self.register(key, response)
        self.filters = list(filters)
        self.funcs: list[Any] = [None]
        self.mods: list[ModuleType | None] = [None]
        self._keys: list[Any] = [None]
        self.busy = 0

    @property
    def tracking(self) -> bool:
        """Whether call stacks are maintained (only needed by filters)."""
        return bool(self.filters)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, key: SignatureKey, response: Any = _UNSET) -> Any:
        """Map ``key`` to ``response``, replacing any earlier response."""
        if response is _UNSET:
            response = Stub()
        self.mocks[key] = response
        self.methods = frozenset(self.mocks)
        return response

    def find(self, target: Any, arg_types: tuple[type, ...]) -> SignatureKey | None:
        """Most specific registered key of ``target`` accepting ``arg_types``."""
        return most_specific(
            key for key in self.mocks if key.target is target and key.accepts(arg_types)
        )

    def lookup(self, target: Any, arg_types: tuple[type, ...]) -> Any:
        """Return the response registered for a call of ``target``, or ``None``."""
        key = self.find(target, arg_types)
        if key is None:
            return None
        return self.mocks[key]

    def response(self, key: SignatureKey) -> Any:
        """Response registered under exactly ``key``.

        Raises:
            InterceptionLookupError: If ``key`` is not registered.
        """
        try:
            return self.mocks[key]
        except KeyError:
            raise InterceptionLookupError(key) from None

    def should_intercept(self, key: SignatureKey) -> bool:
        if key not in self.methods:
            return False
        if not self.filters:
            return True
        return all(accept(self) for accept in self.filters)

    # ------------------------------------------------------------------
    # Depth and origin tracking
    # ------------------------------------------------------------------

    def start(self, root_function: Any, root_module: ModuleType | None) -> None:
        """Reset the stacks to a single root entry."""
        self.funcs[:] = [root_function]
        self.mods[:] = [root_module]
        self._keys[:] = [None]

    def enter(self, function: Any, arg_types: tuple[type, ...] = ()) -> None:
        self._push(None, function, owning_module(function, arg_types))

    def exit(self) -> None:
        if len(self.funcs) <= 1:
            raise MockError("exit() called without a matching enter()")
        self._pop()

    def current_depth(self) -> int:
        """Number of calls on the stack, not counting the root.

        The first function called from the mocked body has a depth of 1.
        """
        return len(self.funcs) - 1

    def current_function(self) -> Any:
        """The function that is making the call being decided."""
        return self.funcs[-2] if len(self.funcs) > 1 else None

    def current_module(self) -> ModuleType | None:
        """Module of :meth:`current_function`."""
        return self.mods[-2] if len(self.mods) > 1 else None

    def _push(self, key: Any, function: Any, module: ModuleType | None) -> None:
        self._keys.append(key)
        self.funcs.append(function)
        self.mods.append(module)

    def _pop(self) -> None:
        self._keys.pop()
        self.funcs.pop()
        self.mods.pop()

    def profile(self, frame: FrameType, event: str, arg: Any) -> None:
        """``sys.setprofile`` callback keeping the stacks in step with execution.

        Library frames, and frames entered directly from library frames, are
        left out: hooks push their target through :meth:`enter` instead.
        Entries are popped only by the frame that pushed them.
        """
        if self.busy:
            return
        if event == "call":
            if is_library_code(frame.f_code):
                return
            caller = frame.f_back
            if caller is not None and is_library_code(caller.f_code):
                return
            self._push(frame, function_of(frame), module_of(frame))
        elif event == "return":
            if self._keys[-1] is frame:
                self._pop()
        elif event == "c_call":
            if is_library_code(frame.f_code):
                return
            self._push((frame, arg), arg, owning_module(arg))
        else:
            # Bound builtin methods may be reported as different objects on
            # call and return, so only the calling frame is compared.
            key = self._keys[-1]
            if type(key) is tuple and key[0] is frame:
                self._pop()
