"""Selective call interception for tests."""

__version__ = "0.1.0"
__all__ = [
    "ANY",
    "Call",
    "Context",
    "EffectExhaustedError",
    "Exactly",
    "InterceptionLookupError",
    "Metadata",
    "MockError",
    "NoTargetsError",
    "Predicate",
    "SignatureError",
    "Stub",
    "VarArgs",
    "configure",
    "excluding",
    "get_context",
    "including",
    "instance_of",
    "max_depth",
    "min_depth",
    "mock",
    "mocking",
    "new_context",
]

from .api import mock, mocking
from .config import configure
from .context import Context
from .exceptions import (
    EffectExhaustedError,
    InterceptionLookupError,
    MockError,
    NoTargetsError,
    SignatureError,
)
from .filters import excluding, including, max_depth, min_depth
from .matching import ANY, Call, Predicate, instance_of
from .metadata import Metadata
from .registry import get_context, new_context
from .signature import Exactly, VarArgs
from .stub import Stub
