"""Error taxonomy for value conversion and function bridging."""

from __future__ import annotations


class BridgeError(Exception):
    """Base error for reported, recoverable conversion failures."""

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class UnsupportedType(BridgeError, TypeError):
    """A value's kind is outside the set the bridge can convert."""

    def __init__(self, type_name: str, msg: str | None = None):
        super().__init__(msg or f"type {type_name} is not a supported runtime type")
        self.type_name = type_name


class ArityMismatch(BridgeError, TypeError):
    """A call supplied a different number of arguments than declared."""

    def __init__(self, expected: int, actual: int, name: str | None = None):
        msg = f"expected {expected} args but got {actual}"
        if name:
            msg = f"{name}: {msg}"
        super().__init__(msg)
        self.expected = expected
        self.actual = actual
        self.name = name


class KwargShapeError(BridgeError, ValueError):
    """A named-argument pair is not a (text, value) tuple."""


class FatalPrecondition(AssertionError):
    """Registration or coercion defect; not part of the recoverable taxonomy."""


__all__ = [
    "BridgeError",
    "UnsupportedType",
    "ArityMismatch",
    "KwargShapeError",
    "FatalPrecondition",
]
