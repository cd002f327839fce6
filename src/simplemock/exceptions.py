"""Custom exceptions for stubs, signatures and interception contexts."""

from typing import Any


class MockError(Exception):
    """Base class for simplemock errors."""


class NoTargetsError(MockError, ValueError):
    """Raised when mock() is called without anything to intercept."""

    def __init__(self) -> None:
        super().__init__("At least one function must be mocked")


class EffectExhaustedError(MockError):
    """Raised when a stub is called more often than its effect sequence allows."""

    def __init__(self, stub: Any) -> None:
        self.stub = stub
        super().__init__(f"{stub!r} has no effects left")


class SignatureError(MockError, TypeError):
    """Raised for malformed signatures or target declarations."""


class InterceptionLookupError(MockError, KeyError):
    """Raised when a signature key is not registered in the active metadata."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Signature not registered: {key!r}")

    def __str__(self) -> str:
        return str(self.args[0])
