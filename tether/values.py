"""Runtime value grammar as seen by the bridge.

Every value the scripting runtime can hand to native code, or receive from
it, is one of the classes below. The set is closed: the codec matches on
these classes exhaustively and anything it does not recognise is either an
UnsupportedType failure (on the way in) or an opaque passthrough (on the way
out).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from .errors import UnsupportedType

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .bridge import SignatureDescriptor


# ============================================================
# Base classes
# ============================================================


class Value:
    """A runtime value with a concrete type tag."""

    def type_name(self) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        raise NotImplementedError

    def repr(self) -> str:
        """Representation used when the value is nested in a container."""
        return self.to_string()


class HashableValue(Value):
    """A value that can be used as a dict key / set member."""

    def __hash__(self) -> int:  # pragma: no cover - implemented by subclasses
        raise NotImplementedError


def ensure_hashable(value: Value) -> HashableValue:
    if not isinstance(value, HashableValue):
        raise UnsupportedType(value.type_name(), f"unhashable type: {value.type_name()}")
    # Tuples are only hashable when every element is.
    hash(value)
    return value


# ============================================================
# Scalars
# ============================================================


class _NoneType(Value):
    """The runtime's "no value" result."""

    _instance: "_NoneType | None" = None

    def __new__(cls) -> "_NoneType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def type_name(self) -> str:
        return "NoneType"

    def to_string(self) -> str:
        return "None"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NONE"


NONE = _NoneType()


@dataclass(eq=False)
class VBool(HashableValue):
    value: bool

    def type_name(self) -> str:
        return "bool"

    def to_string(self) -> str:
        return "True" if self.value else "False"

    def __hash__(self) -> int:
        return hash(("bool", self.value))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VBool) and self.value == other.value


class _Integer(HashableValue):
    """Shared behaviour of the signed and unsigned integer variants.

    The runtime has a single integer type, so a signed and an unsigned value
    with the same magnitude are interchangeable as keys.
    """

    value: int

    def to_string(self) -> str:
        return str(self.value)

    def __hash__(self) -> int:
        return hash(("int", self.value))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Integer) and self.value == other.value


@dataclass(eq=False)
class VInt(_Integer):
    value: int

    def type_name(self) -> str:
        return "int64"


@dataclass(eq=False)
class VUint(_Integer):
    value: int

    def type_name(self) -> str:
        return "uint64"


@dataclass(eq=False)
class VFloat(HashableValue):
    value: float

    def type_name(self) -> str:
        return "float"

    def to_string(self) -> str:
        return repr(self.value)

    def __hash__(self) -> int:
        # Include tag so float keys never collide with int keys of same value.
        return hash(("float", self.value))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VFloat) and self.value == other.value


@dataclass(eq=False)
class VString(HashableValue):
    value: str

    def type_name(self) -> str:
        return "string"

    def to_string(self) -> str:
        return self.value

    def repr(self) -> str:
        return '"' + self.value.replace("\\", "\\\\").replace('"', '\\"') + '"'

    def __hash__(self) -> int:
        return hash(("string", self.value))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VString) and self.value == other.value


# ============================================================
# Containers
# ============================================================


@dataclass(eq=False)
class VTuple(HashableValue):
    elements: tuple[Value, ...]

    def type_name(self) -> str:
        return "tuple"

    def to_string(self) -> str:
        if len(self.elements) == 1:
            return f"({self.elements[0].repr()},)"
        inner = ", ".join(v.repr() for v in self.elements)
        return f"({inner})"

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)

    def __hash__(self) -> int:
        elems = []
        for e in self.elements:
            if not isinstance(e, HashableValue):
                raise UnsupportedType(
                    e.type_name(), f"unhashable type: tuple containing {e.type_name()}"
                )
            elems.append(hash(e))
        return hash(("tuple", tuple(elems)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VTuple):
            return False
        return self.elements == other.elements


@dataclass
class VList(Value):
    elements: list[Value]

    def type_name(self) -> str:
        return "list"

    def to_string(self) -> str:
        inner = ", ".join(v.repr() for v in self.elements)
        return f"[{inner}]"

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)


@dataclass(eq=False)
class VDict(Value):
    # Keys must be hashable values; insertion order is preserved.
    entries: dict[HashableValue, Value]

    def type_name(self) -> str:
        return "dict"

    def to_string(self) -> str:
        parts: list[str] = []
        for k, v in self.entries.items():
            parts.append(f"{k.repr()}: {v.repr()}")
        return "{" + ", ".join(parts) + "}"

    def set_key(self, key: Value, value: Value) -> None:
        self.entries[ensure_hashable(key)] = value

    def get(self, key: Value) -> Value | None:
        return self.entries.get(ensure_hashable(key))

    def keys(self) -> list[HashableValue]:
        return list(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VDict) and self.entries == other.entries


@dataclass(eq=False)
class VSet(Value):
    elements: set[HashableValue]

    def type_name(self) -> str:
        return "set"

    def to_string(self) -> str:
        inner = ", ".join(v.repr() for v in self.elements)
        return f"set([{inner}])"

    def insert(self, member: Value) -> None:
        self.elements.add(ensure_hashable(member))

    def __contains__(self, member: object) -> bool:
        return member in self.elements

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VSet) and self.elements == other.elements


# ============================================================
# Handles
# ============================================================


@dataclass(eq=False)
class VCallable(HashableValue):
    """A native function the runtime can call."""

    fn: Any
    signature: "SignatureDescriptor"

    @property
    def name(self) -> str:
        return self.signature.name

    @property
    def arity(self) -> int:
        return self.signature.arity

    def type_name(self) -> str:
        return "builtin_function_or_method"

    def to_string(self) -> str:
        return f"<built-in function {self.name}>"

    def invoke(self, args) -> tuple[Value, BaseException | None]:
        from .bridge import invoke

        return invoke(self, args)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.fn(*args, **kwargs)

    def __hash__(self) -> int:
        return hash(("callable", id(self.fn)))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VCallable) and self.fn is other.fn


@dataclass(eq=False)
class VRecord(HashableValue):
    """Opaque handle to a native record produced by the record projector."""

    native: Any

    @property
    def name(self) -> str:
        return type(self.native).__name__

    def unwrap(self) -> Any:
        return self.native

    def attr_names(self) -> list[str]:
        return [f.name for f in fields(self.native)]

    def attr(self, name: str) -> Value:
        if name not in self.attr_names():
            raise AttributeError(f"{self.name} has no .{name} field or method")
        from .codec import to_value

        return to_value(getattr(self.native, name))

    def type_name(self) -> str:
        return self.name

    def to_string(self) -> str:
        parts = [f"{n} = {self.attr(n).repr()}" for n in self.attr_names()]
        return f"{self.name}({', '.join(parts)})"

    def __hash__(self) -> int:
        return hash(("record", id(self.native)))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VRecord) and self.native is other.native


__all__ = [
    "Value",
    "HashableValue",
    "NONE",
    "VBool",
    "VInt",
    "VUint",
    "VFloat",
    "VString",
    "VTuple",
    "VList",
    "VDict",
    "VSet",
    "VCallable",
    "VRecord",
    "ensure_hashable",
]
