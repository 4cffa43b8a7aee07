"""Shared constant values for the tether bridge."""

from enum import Enum

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1

DEFAULT_CALLABLE_NAME = "fn"


class Kind(Enum):
    """Coarse structural classification of a native value."""

    BOOL = "bool"
    INT = "int"
    INT64 = "int64"
    UINT = "uint"
    UINT64 = "uint64"
    FLOAT = "float"
    STRING = "string"
    FUNC = "func"
    MAP = "map"
    SET = "set"
    SEQUENCE = "sequence"
    RECORD = "record"
    INVALID = "invalid"


__all__ = [
    "INT64_MIN",
    "INT64_MAX",
    "UINT64_MAX",
    "DEFAULT_CALLABLE_NAME",
    "Kind",
]
