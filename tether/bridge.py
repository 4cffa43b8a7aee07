"""Native callables exposed to the runtime as builtin functions."""

from __future__ import annotations

from collections import abc
from dataclasses import dataclass
import functools
import inspect
import logging
import types
import typing
from typing import Any, Union, get_args, get_origin

import numpy as np

from . import codec
from .constants import DEFAULT_CALLABLE_NAME
from .errors import ArityMismatch, FatalPrecondition
from .values import NONE, Value, VCallable, VTuple

logger = logging.getLogger(__name__)

_EMPTY = inspect.Parameter.empty
_NONE_TYPE = type(None)

_CONTAINER_ORIGINS = {
    list: list,
    abc.Sequence: list,
    abc.MutableSequence: list,
    tuple: tuple,
    set: set,
    abc.Set: set,
    abc.MutableSet: set,
    frozenset: frozenset,
    dict: dict,
    abc.Mapping: dict,
    abc.MutableMapping: dict,
}


def _annotation_name(ann: Any) -> str:
    if ann is _NONE_TYPE:
        return "None"
    if isinstance(ann, type):
        return ann.__name__
    return repr(ann).replace("typing.", "")


def _is_union(ann: Any) -> bool:
    return get_origin(ann) in (Union, types.UnionType)


def _is_error_type(ann: Any) -> bool:
    if isinstance(ann, type):
        return issubclass(ann, BaseException)
    if _is_union(ann):
        members = [m for m in get_args(ann) if m is not _NONE_TYPE]
        return bool(members) and all(
            isinstance(m, type) and issubclass(m, BaseException) for m in members
        )
    return False


def _split_return(ann: Any) -> tuple[tuple[Any, ...] | None, bool]:
    """Split a return annotation into declared results and the error flag.

    A fixed-length ``tuple[...]`` annotation declares one result per member;
    ``tuple[X, ...]`` is a single sequence result.
    """

    if ann is _EMPTY or isinstance(ann, str):
        return None, False
    if ann is None or ann is _NONE_TYPE:
        return (), False
    if _is_error_type(ann):
        return (), True
    if get_origin(ann) is tuple:
        members = get_args(ann)
        if members and members[-1] is not Ellipsis:
            if _is_error_type(members[-1]):
                return tuple(members[:-1]), True
            return tuple(members), False
    return (ann,), False


def _resolve_hints(fn: Any) -> dict[str, Any]:
    target = fn
    if isinstance(fn, functools.partial):
        target = fn.func
    elif not inspect.isroutine(fn):
        target = type(fn).__call__
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError):
        return {}


@dataclass(frozen=True)
class SignatureDescriptor:
    """Declared parameter and result types of a wrapped native callable.

    ``results`` is ``None`` when the callable declares no return annotation;
    such callables return a single value, or nothing when they return ``None``.
    """

    name: str
    params: tuple = ()
    results: tuple | None = None
    returns_error: bool = False

    def __post_init__(self):
        object.__setattr__(
            self, "name", (self.name or "").strip() or DEFAULT_CALLABLE_NAME
        )
        object.__setattr__(self, "params", tuple(self.params))
        if self.results is not None:
            object.__setattr__(self, "results", tuple(self.results))

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def result_count(self) -> int | None:
        if self.results is None:
            return None
        return len(self.results)

    def to_dict(self):
        results = None
        if self.results is not None:
            results = [_annotation_name(r) for r in self.results]
        return {
            "name": self.name,
            "params": [_annotation_name(p) for p in self.params],
            "results": results,
            "returns_error": self.returns_error,
        }

    @classmethod
    def from_callable(cls, fn, name=None):
        """Build a descriptor from ``fn``'s signature and type hints."""

        name = name or getattr(fn, "__name__", None) or DEFAULT_CALLABLE_NAME
        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError) as exc:
            raise FatalPrecondition(
                f"can't read the signature of {name}; supply one explicitly"
            ) from exc
        hints = _resolve_hints(fn)

        params = []
        for p in sig.parameters.values():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                raise FatalPrecondition(
                    f"{name}: variadic parameter {p.name!r} is not supported"
                )
            if p.kind is p.KEYWORD_ONLY:
                if p.default is _EMPTY:
                    raise FatalPrecondition(
                        f"{name}: keyword-only parameter {p.name!r} has no default"
                    )
                continue
            ann = hints.get(p.name, p.annotation)
            params.append(Any if ann is _EMPTY or isinstance(ann, str) else ann)

        results, returns_error = _split_return(
            hints.get("return", sig.return_annotation)
        )
        return cls(name, tuple(params), results, returns_error)


def make_callable(fn, name=None, signature=None) -> VCallable:
    """Wrap a native callable so the runtime can call it.

    If the last declared result is an exception type, a non-``None`` value in
    that slot is reported as the call's error. Passing something that is not
    a function is a programming error.

    Multiple results are only recognised from a fixed-length ``tuple[...]``
    return annotation. Without one, a returned tuple is a single sequence
    result and converts to a runtime list.
    """

    if isinstance(fn, VCallable):
        return fn
    if not callable(fn) or isinstance(fn, type):
        raise FatalPrecondition(f"{fn!r} is not a function")
    if signature is None:
        signature = SignatureDescriptor.from_callable(fn, name)
    logger.debug("wrapped %s (arity %d)", signature.name, signature.arity)
    return VCallable(fn, signature)


# ============================================================
# Argument coercion
# ============================================================


def _mismatch(value: Any, ann: Any) -> FatalPrecondition:
    return FatalPrecondition(
        f"value {value!r} of type {type(value).__name__} "
        f"can't be converted to {_annotation_name(ann)}"
    )


def _is_integral(v: Any) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_))


def _is_real(v: Any) -> bool:
    return isinstance(v, (float, np.floating))


def _to_fixed_width(value: Any, target: type) -> Any:
    info = np.iinfo(target)
    n = int(value)
    if not info.min <= n <= info.max:
        raise FatalPrecondition(f"{value!r} overflows {target.__name__}")
    return target(n)


def _coerce_scalar(value: Any, target: type) -> Any:
    if type(value) is target:
        return value
    numeric = _is_integral(value) or _is_real(value)
    if target is bool or target is np.bool_:
        if isinstance(value, (bool, np.bool_)):
            return target(value)
    elif issubclass(target, np.integer):
        if numeric:
            return _to_fixed_width(value, target)
    elif issubclass(target, (float, np.floating)):
        if numeric:
            return target(value)
    elif issubclass(target, int):
        if numeric:
            return target(value)
    elif issubclass(target, str):
        if isinstance(value, str):
            return target(value)
    if isinstance(value, target):
        return value
    raise _mismatch(value, target)


def _coerce_container(value: Any, origin: Any, args: tuple, ann: Any) -> Any:
    target = _CONTAINER_ORIGINS[origin]
    if target in (list, tuple):
        if not isinstance(value, (list, tuple)):
            raise _mismatch(value, ann)
        if target is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(value):
                raise FatalPrecondition(
                    f"expected {len(args)} elements for {_annotation_name(ann)}, "
                    f"got {len(value)}"
                )
            return tuple(coerce(v, a) for v, a in zip(value, args))
        elem = args[0] if args else Any
        return target(coerce(v, elem) for v in value)
    if target in (set, frozenset):
        if not isinstance(value, (set, frozenset, list, tuple)):
            raise _mismatch(value, ann)
        elem = args[0] if args else Any
        return target(coerce(v, elem) for v in value)
    if not isinstance(value, dict):
        raise _mismatch(value, ann)
    key_ann, val_ann = args if len(args) == 2 else (Any, Any)
    return {coerce(k, key_ann): coerce(v, val_ann) for k, v in value.items()}


def _coerce_union(value: Any, ann: Any) -> Any:
    members = get_args(ann)
    if value is None and _NONE_TYPE in members:
        return None
    for m in members:
        if isinstance(m, type) and type(value) is m:
            return value
    for m in members:
        if m is _NONE_TYPE:
            continue
        try:
            return coerce(value, m)
        except FatalPrecondition:
            continue
    raise _mismatch(value, ann)


def coerce(value: Any, ann: Any) -> Any:
    """Convert a decoded argument to the parameter type ``ann``.

    Values already of the declared type pass through; convertible shapes
    (numeric widths, list/tuple/set) are converted explicitly. Anything else
    means the registered signature and the call disagree structurally, and
    raises :class:`FatalPrecondition`.
    """

    if ann is Any or ann is object or ann is _EMPTY:
        return value
    if _is_union(ann):
        return _coerce_union(value, ann)
    if ann is None or ann is _NONE_TYPE:
        if value is None or value is NONE:
            return None
        raise _mismatch(value, ann)
    origin = get_origin(ann) or ann
    if origin is abc.Callable:
        if callable(value):
            return value
        raise _mismatch(value, ann)
    if origin in _CONTAINER_ORIGINS:
        return _coerce_container(value, origin, get_args(ann), ann)
    if isinstance(origin, type):
        return _coerce_scalar(value, origin)
    # TypeVars, Literal and other typing constructs are not checked.
    return value


# ============================================================
# Invocation
# ============================================================


def _split_outputs(out: Any, count: int, name: str) -> tuple:
    if not isinstance(out, (tuple, list)) or len(out) != count:
        raise FatalPrecondition(f"{name} declared {count} results but returned {out!r}")
    return tuple(out)


def _pack(sig: SignatureDescriptor, out: Any) -> tuple[Value, BaseException | None]:
    if sig.results is None:
        if out is None:
            return NONE, None
        return codec.to_value(out), None

    slots = len(sig.results) + (1 if sig.returns_error else 0)
    if slots == 0:
        outs: tuple = ()
    elif slots == 1:
        outs = (out,)
    else:
        outs = _split_outputs(out, slots, sig.name)

    err = None
    if sig.returns_error:
        err = outs[-1]
        outs = outs[:-1]
        if err is not None and not isinstance(err, BaseException):
            raise FatalPrecondition(f"{sig.name} returned {err!r} in its error slot")
        if err is not None:
            logger.debug("%s returned error: %s", sig.name, err)

    if not outs:
        return NONE, err
    if len(outs) == 1:
        return codec.to_value(outs[0]), err
    # tuple-up multiple values
    return codec.make_tuple(list(outs)), err


def invoke(fn: VCallable, args) -> tuple[Value, BaseException | None]:
    """Call a wrapped native function with positional runtime arguments.

    Returns ``(value, error)``: ``value`` is ``NONE`` for no results, the
    single encoded result, or a tuple of encoded results; ``error`` is the
    native error slot's value, if one was declared and set.
    """

    sig = fn.signature
    args = tuple(args.elements if isinstance(args, VTuple) else args)
    if len(args) != sig.arity:
        raise ArityMismatch(sig.arity, len(args), sig.name)

    natives = []
    for i, (arg, ann) in enumerate(zip(args, sig.params)):
        try:
            natives.append(coerce(codec.from_value(arg), ann))
        except FatalPrecondition as exc:
            raise FatalPrecondition(f"{sig.name}: argument {i}: {exc}") from exc

    logger.debug("calling %s with %d args", sig.name, len(natives))
    return _pack(sig, fn.fn(*natives))


__all__ = [
    "SignatureDescriptor",
    "make_callable",
    "coerce",
    "invoke",
]
