"""Global configuration, resolved from explicit settings, then the environment."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

RESCAN_MODES = frozenset({"auto", "always"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass
class _ConfigState:
    rescan: str | None = None
    snapshot_args: bool | None = None
    excluded_modules: tuple[str, ...] | None = None


_state = _ConfigState()
_state_lock = threading.Lock()


def configure(
    rescan: str | None = None,
    snapshot_args: bool | None = None,
    excluded_modules: list[str] | tuple[str, ...] | None = None,
) -> None:
    """Configure interception settings.

    Args:
        rescan: ``"auto"`` scans for call sites only when a context installs
            new hooks; ``"always"`` rescans on every mock() call.
        snapshot_args: Default for :class:`~simplemock.stub.Stub`'s
            ``snapshot`` option.
        excluded_modules: Module name prefixes whose namespaces are never
            patched.
    """
    if rescan is not None and rescan not in RESCAN_MODES:
        raise ValueError(f"rescan must be one of {sorted(RESCAN_MODES)}")
    if excluded_modules is not None:
        if isinstance(excluded_modules, str):
            raise ValueError("excluded_modules must be a sequence of module names")
        excluded_modules = tuple(excluded_modules)
        if not all(isinstance(name, str) and name for name in excluded_modules):
            raise ValueError("excluded_modules must contain non-empty strings")
    with _state_lock:
        if rescan is not None:
            _state.rescan = rescan
        if snapshot_args is not None:
            _state.snapshot_args = bool(snapshot_args)
        if excluded_modules is not None:
            _state.excluded_modules = excluded_modules


def reset_configuration() -> None:
    """Drop explicit settings so the environment and defaults apply again."""
    with _state_lock:
        _state.rescan = None
        _state.snapshot_args = None
        _state.excluded_modules = None


def resolve_rescan() -> str:
    if _state.rescan is not None:
        return _state.rescan

    env_value = os.getenv("SIMPLEMOCK_RESCAN")
    if env_value is not None:
        mode = env_value.strip().lower()
        if mode in RESCAN_MODES:
            return mode
        logger.warning("Ignoring invalid SIMPLEMOCK_RESCAN=%r; using 'auto'", env_value)
    return "auto"


def resolve_snapshot_args() -> bool:
    if _state.snapshot_args is not None:
        return _state.snapshot_args

    env_value = os.getenv("SIMPLEMOCK_SNAPSHOT_ARGS")
    if env_value is not None:
        flag = env_value.strip().lower()
        if flag in _TRUE_VALUES:
            return True
        if flag in _FALSE_VALUES:
            return False
        logger.warning(
            "Ignoring invalid SIMPLEMOCK_SNAPSHOT_ARGS=%r; snapshots disabled",
            env_value,
        )
    return False


def resolve_excluded_modules() -> tuple[str, ...]:
    if _state.excluded_modules is not None:
        return _state.excluded_modules

    env_value = os.getenv("SIMPLEMOCK_EXCLUDED_MODULES")
    if env_value:
        return tuple(name.strip() for name in env_value.split(",") if name.strip())
    return ()
