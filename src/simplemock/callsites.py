"""Call-site table: every reference through which a callable can be reached.

Python code calls a function by looking it up somewhere: a module's globals,
a class or instance namespace, or a closure cell. Replacing the function in
all of those places at once makes every call reach the replacement, without
touching the calling code. The garbage collector knows every container that
refers to an object, so :func:`find_slots` asks it.
"""

from __future__ import annotations

import gc
import logging
import sys
from dataclasses import dataclass
from types import CellType, FunctionType
from typing import Any, Iterable

logger = logging.getLogger(__name__)

ITEM = "item"
ATTRIBUTE = "attribute"
CELL = "cell"

_MISSING: Any = object()
_IMMUTABLE_TYPE_FLAG = 1 << 8
_SKIPPED_KEYS = frozenset({"__wrapped__"})


@dataclass(slots=True, eq=False)
class Slot:
    """One place holding a reference to a target.

    Attributes:
        kind: ``"item"`` for a plain dict entry (module globals, instance
            ``__dict__``), ``"attribute"`` for a class attribute, ``"cell"``
            for a closure cell.
        holder: The dict, class or cell.
        key: Dict key or attribute name; ``None`` for cells.
        original: The value found when the slot was discovered.
    """

    kind: str
    holder: Any
    key: Any
    original: Any

    def current(self) -> Any:
        if self.kind == CELL:
            try:
                return self.holder.cell_contents
            except ValueError:
                return _MISSING
        if self.kind == ATTRIBUTE:
            return self.holder.__dict__.get(self.key, _MISSING)
        return self.holder.get(self.key, _MISSING)

    def assign(self, value: Any) -> None:
        if self.kind == CELL:
            self.holder.cell_contents = value
        elif self.kind == ATTRIBUTE:
            setattr(self.holder, self.key, value)
        else:
            self.holder[self.key] = value

    def replacement(self, hook: Any) -> Any:
        """Value to store in this slot so that lookups reach ``hook``.

        Class attributes keep their binding behaviour: functions become
        methods through the hook's ``__get__``, static and class methods are
        re-wrapped, anything else is stored as a static method.
        """
        if self.kind != ATTRIBUTE:
            return hook
        if isinstance(self.original, staticmethod):
            return staticmethod(hook)
        if isinstance(self.original, classmethod):
            return classmethod(hook)
        if isinstance(self.original, FunctionType):
            return hook
        return staticmethod(hook)

    def __repr__(self) -> str:
        holder = getattr(self.holder, "__qualname__", type(self.holder).__name__)
        return f"Slot({self.kind}, {holder}, {self.key!r})"


def excluded_namespaces(prefixes: Iterable[str]) -> set[int]:
    """Ids of the globals of every loaded module matching ``prefixes``."""
    prefixes = tuple(prefixes)
    ids: set[int] = set()
    for name, module in list(sys.modules.items()):
        if module is None:
            continue
        if any(name == prefix or name.startswith(prefix + ".") for prefix in prefixes):
            namespace = getattr(module, "__dict__", None)
            if namespace is not None:
                ids.add(id(namespace))
    return ids


def _owning_class(namespace: dict[Any, Any]) -> type | None:
    for candidate in gc.get_referrers(namespace):
        if not isinstance(candidate, type):
            continue
        proxy = vars(candidate)
        if len(proxy) == len(namespace) and all(proxy.get(k) is v for k, v in namespace.items()):
            return candidate
    return None


def _collect_namespace(
    namespace: dict[Any, Any],
    value: Any,
    excluded: set[int],
    slots: list[Slot],
) -> None:
    if id(namespace) in excluded:
        return
    keys = [key for key, item in list(namespace.items()) if item is value and key not in _SKIPPED_KEYS]
    if not keys:
        return
    owner = _owning_class(namespace)
    if owner is not None:
        if owner.__flags__ & _IMMUTABLE_TYPE_FLAG:
            return
        slots.extend(Slot(ATTRIBUTE, owner, key, value) for key in keys)
    else:
        slots.extend(Slot(ITEM, namespace, key, value) for key in keys)


def find_slots(target: Any, excluded: set[int]) -> list[Slot]:
    """Find every dict entry, class attribute and closure cell holding ``target``.

    Static and class methods are found through their wrapper objects.
    Namespaces whose id is in ``excluded`` are skipped, and so are dict
    subclasses, which keeps internal bookkeeping mappings untouched.
    """
    slots: list[Slot] = []
    for referrer in gc.get_referrers(target):
        if type(referrer) is dict:
            _collect_namespace(referrer, target, excluded, slots)
        elif type(referrer) is CellType:
            slots.append(Slot(CELL, referrer, None, target))
        elif isinstance(referrer, (staticmethod, classmethod)) and referrer.__func__ is target:
            for outer in gc.get_referrers(referrer):
                if type(outer) is dict:
                    _collect_namespace(outer, referrer, excluded, slots)
        elif not isinstance(referrer, type):
            # Instances may keep attributes inline until __dict__ is requested.
            try:
                namespace = object.__getattribute__(referrer, "__dict__")
            except (AttributeError, TypeError):
                continue
            if type(namespace) is dict:
                _collect_namespace(namespace, target, excluded, slots)

    unique: dict[tuple[int, Any], Slot] = {}
    for slot in slots:
        unique.setdefault((id(slot.holder), slot.key), slot)
    return list(unique.values())


def patch(slots: Iterable[Slot], hook: Any) -> list[tuple[Slot, Any, Any]]:
    """Point every still-valid slot at ``hook``.

    Returns ``(slot, previous, installed)`` records for :func:`restore`.
    Slots that no longer hold their original value are left alone.
    """
    applied: list[tuple[Slot, Any, Any]] = []
    for slot in slots:
        current = slot.current()
        if current is not slot.original:
            logger.debug("Skipping stale %r", slot)
            continue
        installed = slot.replacement(hook)
        slot.assign(installed)
        applied.append((slot, current, installed))
    return applied


def restore(applied: list[tuple[Slot, Any, Any]]) -> None:
    """Undo :func:`patch`, newest first."""
    for slot, previous, installed in reversed(applied):
        if slot.current() is installed:
            slot.assign(previous)
        else:
            logger.debug("%r was reassigned while mocking; not restoring it", slot)
