"""Process-wide table of named contexts."""

from __future__ import annotations

import threading

from .context import Context

_lock = threading.Lock()
_contexts: dict[str, Context] = {}


def new_context() -> Context:
    """Create an anonymous context that is never shared."""
    return Context()


def get_context(name: str) -> tuple[Context, bool]:
    """Return the context called ``name`` and whether it was just created.

    Hooks installed in a named context stay installed for the rest of the
    process and are visible to every later caller using the same name.
    """
    with _lock:
        context = _contexts.get(name)
        if context is not None:
            return context, False
        context = Context(name)
        _contexts[name] = context
        return context, True


def context_names() -> list[str]:
    with _lock:
        return list(_contexts)


def clear_registry() -> None:
    """Forget every named context. Hooks of forgotten contexts stay inactive."""
    with _lock:
        _contexts.clear()
