"""Record projection: native dataclass instances as runtime objects."""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol

from .errors import UnsupportedType
from .values import VRecord


class RecordProjector(Protocol):
    """Converts native records to runtime records and back."""

    def project(self, native: Any) -> VRecord: ...

    def unproject(self, record: VRecord) -> Any: ...


class DataclassProjector:
    """Projects dataclass instances; fields are read through on access."""

    def project(self, native: Any) -> VRecord:
        if not dataclasses.is_dataclass(native) or isinstance(native, type):
            raise UnsupportedType(
                type(native).__name__, f"{type(native).__name__} is not a record"
            )
        return VRecord(native)

    def unproject(self, record: VRecord) -> Any:
        return record.unwrap()


DEFAULT_PROJECTOR: RecordProjector = DataclassProjector()


def project(native: Any) -> VRecord:
    return DEFAULT_PROJECTOR.project(native)


def unproject(record: VRecord) -> Any:
    return DEFAULT_PROJECTOR.unproject(record)


__all__ = [
    "RecordProjector",
    "DataclassProjector",
    "DEFAULT_PROJECTOR",
    "project",
    "unproject",
]
