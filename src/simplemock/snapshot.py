"""Argument snapshots using dill, so recorded calls survive later mutation."""

from __future__ import annotations

import logging
import threading
from typing import Any

import dill

logger = logging.getLogger(__name__)

DILL_PROTOCOL = 4

dill.settings["recurse"] = True

_warned_lock = threading.Lock()
_warned_types: set[str] = set()


def _type_key(obj: Any) -> str:
    obj_type = type(obj)
    return f"{obj_type.__module__}.{obj_type.__qualname__}"


def snapshot(obj: Any) -> Any:
    """Return a deep copy of ``obj``, or ``obj`` itself if dill cannot copy it."""
    try:
        return dill.loads(dill.dumps(obj, protocol=DILL_PROTOCOL))
    except Exception as exc:  # noqa: BLE001 - degrade to a reference for unpicklable values
        type_key = _type_key(obj)
        with _warned_lock:
            first = type_key not in _warned_types
            _warned_types.add(type_key)
        if first:
            logger.warning(
                "Cannot snapshot %s argument (%s: %s); recording it by reference",
                type_key,
                type(exc).__name__,
                exc,
            )
        return obj


def snapshot_arguments(
    args: tuple[Any, ...], kwargs: dict[str, Any]
) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """Snapshot every positional and keyword argument independently."""
    return (
        tuple(snapshot(arg) for arg in args),
        {key: snapshot(value) for key, value in kwargs.items()},
    )


def clear_warnings() -> None:
    """Forget which types were already reported as unpicklable."""
    with _warned_lock:
        _warned_types.clear()
