"""Filter functions restricting where in the call tree mocking happens.

A filter is any callable taking the active :class:`~simplemock.metadata.Metadata`
and returning whether the call being decided may be mocked. All filters
passed to ``mock()`` must accept. For example, to mock ``f`` only when it is
called directly by the test body or by a function the body calls:

.. code-block:: python

    mock(body, f, filters=[max_depth(2)])
"""

from __future__ import annotations

from types import CodeType, ModuleType
from typing import Any, Callable

from .metadata import Metadata

Filter = Callable[[Metadata], bool]


def max_depth(n: int) -> Filter:
    """Reject when the current call depth is greater than ``n``."""
    return lambda m: m.current_depth() <= n


def min_depth(n: int) -> Filter:
    """Reject when the current call depth is less than ``n``."""
    return lambda m: m.current_depth() >= n


def _same_module(module: ModuleType | None, item: Any) -> bool:
    if module is None:
        return False
    if isinstance(item, ModuleType):
        return module is item
    return isinstance(item, str) and module.__name__ == item


def _same_function(function: Any, item: Any) -> bool:
    if function is None or isinstance(item, (ModuleType, str)):
        return False
    if function is item:
        return True
    if isinstance(function, CodeType):
        return getattr(item, "__code__", None) is function
    return isinstance(item, CodeType) and getattr(function, "__code__", None) is item


def _calling_from(m: Metadata, items: tuple[Any, ...]) -> bool:
    module = m.current_module()
    function = m.current_function()
    return any(_same_module(module, item) or _same_function(function, item) for item in items)


def excluding(*items: Any) -> Filter:
    """Reject when the calling function or module is one of ``items``.

    Items may be modules, module names, functions or code objects.
    """
    return lambda m: not _calling_from(m, items)


def including(*items: Any) -> Filter:
    """Reject when neither the calling function nor its module is in ``items``."""
    return lambda m: _calling_from(m, items)
