"""Scalar and container conversion between native values and runtime values."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import dataclasses
import logging
import weakref
from typing import Any

import numpy as np

from .constants import INT64_MAX, INT64_MIN, UINT64_MAX, Kind
from .errors import FatalPrecondition, UnsupportedType
from .records import project, unproject
from .values import (
    NONE,
    Value,
    VBool,
    VDict,
    VFloat,
    VInt,
    VList,
    VRecord,
    VSet,
    VString,
    VTuple,
    VUint,
    _Integer,
)

logger = logging.getLogger(__name__)


def _type_name(v: Any) -> str:
    t = type(v)
    if t.__module__ == "builtins":
        return t.__qualname__
    return f"{t.__module__}.{t.__qualname__}"


def _deref(v: Any) -> Any:
    """Resolve a single level of indirection."""

    if isinstance(v, weakref.ReferenceType):
        return v()
    if isinstance(v, np.ndarray) and v.ndim == 0:
        return v[()]
    return v


def _int_kind(v: int) -> Kind:
    if INT64_MIN <= v <= INT64_MAX:
        return Kind.INT64
    if 0 <= v <= UINT64_MAX:
        return Kind.UINT64
    return Kind.INVALID


def classify(native: Any) -> tuple[Kind, Any]:
    """Return the kind of ``native`` and the value the kind was computed on.

    At most one level of indirection is followed, so a weak reference boxed
    in a 0-d array classifies as INVALID.
    """

    v = _deref(native)
    if isinstance(v, weakref.ReferenceType):
        return Kind.INVALID, v
    if isinstance(v, (bool, np.bool_)):
        return Kind.BOOL, v
    if isinstance(v, np.signedinteger):
        return (Kind.INT64 if v.dtype.itemsize == 8 else Kind.INT), v
    if isinstance(v, np.unsignedinteger):
        return (Kind.UINT64 if v.dtype.itemsize == 8 else Kind.UINT), v
    if isinstance(v, int):
        return _int_kind(v), v
    if isinstance(v, (float, np.floating)):
        return Kind.FLOAT, v
    if isinstance(v, str):
        return Kind.STRING, v
    if isinstance(v, Mapping):
        return Kind.MAP, v
    if isinstance(v, (set, frozenset)):
        return Kind.SET, v
    if isinstance(v, np.ndarray) or isinstance(v, Sequence):
        return Kind.SEQUENCE, v
    if dataclasses.is_dataclass(v) and not isinstance(v, type):
        return Kind.RECORD, v
    if callable(v) and not isinstance(v, type):
        return Kind.FUNC, v
    return Kind.INVALID, v


# ============================================================
# Native -> runtime
# ============================================================


def to_value(native: Any) -> Value:
    """Convert a native value into its runtime representation.

    Runtime values are passed through as-is.
    """

    if isinstance(native, Value):
        return native
    kind, v = classify(native)
    if kind is Kind.BOOL:
        return VBool(bool(v))
    if kind in (Kind.INT, Kind.INT64):
        return VInt(int(v))
    if kind in (Kind.UINT, Kind.UINT64):
        return VUint(int(v))
    if kind is Kind.FLOAT:
        return VFloat(float(v))
    if kind is Kind.STRING:
        return VString(str(v))
    if kind is Kind.FUNC:
        from .bridge import make_callable

        return make_callable(v)
    if kind is Kind.MAP:
        return make_dict(v)
    if kind is Kind.SET:
        return make_set(v)
    if kind is Kind.SEQUENCE:
        # There's no way to tell a tuple from a list here, so default to the
        # more permissive list type.
        return make_list(v)
    if kind is Kind.RECORD:
        return project(v)
    if kind is Kind.INVALID:
        raise UnsupportedType(_type_name(v))
    raise FatalPrecondition(f"unhandled kind {kind!r}")  # pragma: no cover


def _make_vals(seq: Any) -> list[Value]:
    kind, v = classify(seq)
    if kind is not Kind.SEQUENCE:
        raise FatalPrecondition(
            f"value should be a sequence but was {kind.value}, {_type_name(seq)}"
        )
    return [to_value(item) for item in v]


def make_list(seq: Any) -> VList:
    """Make a runtime list from a native sequence or array."""

    return VList(_make_vals(seq))


def make_tuple(seq: Any) -> VTuple:
    """Make a runtime tuple from a native sequence or array."""

    return VTuple(tuple(_make_vals(seq)))


def make_dict(mapping: Any) -> VDict:
    """Make a runtime dict from a native mapping.

    Keys and values are converted with :func:`to_value`; a later key equal to
    an earlier one overwrites it.
    """

    kind, m = classify(mapping)
    if kind is not Kind.MAP:
        raise FatalPrecondition(f"can't make dict of {_type_name(mapping)}")
    d = VDict({})
    for k, val in m.items():
        d.set_key(to_value(k), to_value(val))
    return d


def make_set(presence: Any) -> VSet:
    """Make a runtime set from a native set or a presence mapping's keys."""

    kind, s = classify(presence)
    if kind not in (Kind.MAP, Kind.SET):
        raise FatalPrecondition(f"can't make set of {_type_name(presence)}")
    out = VSet(set())
    for member in s:
        out.insert(to_value(member))
    return out


def make_string_dict(mapping: Mapping[str, Any]) -> dict[str, Value]:
    """Convert a name -> native mapping into a name -> runtime value mapping.

    Suitable for seeding a script's globals.
    """

    ret: dict[str, Value] = {}
    for name, native in mapping.items():
        ret[name] = to_value(native)
    return ret


# ============================================================
# Runtime -> native
# ============================================================


def _from_integer(v: _Integer) -> np.int64 | np.uint64:
    if INT64_MIN <= v.value <= INT64_MAX:
        return np.int64(v.value)
    if 0 <= v.value <= UINT64_MAX:
        return np.uint64(v.value)
    raise FatalPrecondition(f"can't convert runtime int {v.value} to a 64-bit integer")


def from_value(value: Value) -> Any:
    """Convert a runtime value into a native value.

    Variants the codec does not know about are returned unchanged, on the
    assumption the receiver knows what to do with them.
    """

    if isinstance(value, VBool):
        return value.value
    if isinstance(value, _Integer):
        return _from_integer(value)
    if isinstance(value, VFloat):
        return value.value
    if isinstance(value, VString):
        return value.value
    if isinstance(value, VList):
        return from_list(value)
    if isinstance(value, VTuple):
        return from_tuple(value)
    if isinstance(value, VDict):
        return from_dict(value)
    if isinstance(value, VSet):
        return from_set(value)
    if isinstance(value, VRecord):
        return unproject(value)
    if value is not NONE:
        logger.debug("passing through unconverted %s", type(value).__name__)
    return value


def from_list(lst: VList) -> list[Any]:
    return [from_value(v) for v in lst.elements]


def from_tuple(tup: VTuple | tuple[Value, ...]) -> tuple[Any, ...]:
    elements = tup.elements if isinstance(tup, VTuple) else tup
    return tuple(from_value(v) for v in elements)


def _native_key(key: Value, seen: dict[Any, Value]) -> Any:
    """Decode a dict key or set member, keeping it distinct from earlier ones.

    Runtime keys that are distinct can decode to equal native values (1,
    True and 1.0), and some decode to unhashable natives (records).
    """

    native = from_value(key)
    try:
        prior = seen.get(native)
    except TypeError:
        raise UnsupportedType(
            _type_name(native), f"unhashable key type: {_type_name(native)}"
        ) from None
    if prior is not None:
        raise UnsupportedType(
            _type_name(native),
            f"keys {prior.repr()} and {key.repr()} decode to the same native key",
        )
    seen[native] = key
    return native


def from_dict(d: VDict) -> dict[Any, Any]:
    seen: dict[Any, Value] = {}
    ret = {}
    for k, v in d.entries.items():
        ret[_native_key(k, seen)] = from_value(v)
    return ret


def from_set(s: VSet) -> set[Any]:
    seen: dict[Any, Value] = {}
    return {_native_key(v, seen) for v in s.elements}


def from_string_dict(mapping: Mapping[str, Value]) -> dict[str, Any]:
    return {name: from_value(v) for name, v in mapping.items()}


__all__ = [
    "classify",
    "to_value",
    "from_value",
    "make_list",
    "make_tuple",
    "make_dict",
    "make_set",
    "make_string_dict",
    "from_list",
    "from_tuple",
    "from_dict",
    "from_set",
    "from_string_dict",
]
