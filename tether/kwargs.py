"""Decoding of named-argument pairs passed by the runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from .codec import from_tuple
from .errors import KwargShapeError
from .values import Value, VTuple


@dataclass(frozen=True)
class Kwarg:
    """A single ``name=value`` named argument."""

    name: str
    value: Any


def from_kwargs(kwargs: Iterable[VTuple | tuple[Value, ...]]) -> list[Kwarg]:
    """Convert ``name=val, name2=val2`` pairs into a list of :class:`Kwarg`.

    Each pair must hold exactly two values and the first must decode to a
    string. Nothing is returned unless every pair is well formed.
    """

    args: list[Kwarg] = []
    for pair in kwargs:
        if not isinstance(pair, (VTuple, tuple)):
            raise KwargShapeError(
                f"kwarg should be a tuple, but was {type(pair).__name__}"
            )
        tup = from_tuple(pair)
        if len(tup) != 2:
            raise KwargShapeError(f"kwarg tuple should have 2 vals, has {len(tup)}")
        name, value = tup
        if not isinstance(name, str):
            raise KwargShapeError(
                "expected name of kwarg to be string, "
                f"but was {type(name).__name__} ({name!r})"
            )
        args.append(Kwarg(name, value))
    return args


__all__ = ["Kwarg", "from_kwargs"]
