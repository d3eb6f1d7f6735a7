"""
HPLM Fact Model

A FactSet is the typed key/value snapshot of one case under evaluation.

Scalars are str, bool, int or EnumTag. Floats are rejected so that every
fact survives canonical serialization unchanged. bool and int are distinct
kinds here even though Python treats True == 1.

JSON form of an EnumTag is {"enum": "<tag>"}; everything else is native.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from ..exceptions import InvalidFactValueError
from .enums import ScalarType


@dataclass(frozen=True)
class EnumTag:
    """
    An enumerated tag value.

    Compares by exact tag equality only; there is no ordering.
    """
    tag: str

    def __post_init__(self) -> None:
        if not isinstance(self.tag, str) or not self.tag:
            raise InvalidFactValueError(
                message="Enum tag must be a non-empty string",
                details={"tag": repr(self.tag)},
            )

    def __str__(self) -> str:
        return self.tag

    def to_json(self) -> dict[str, str]:
        return {"enum": self.tag}


Scalar = Union[str, bool, int, EnumTag]


def scalar_type_of(value: Any) -> Optional[ScalarType]:
    """Return the ScalarType of a value, or None if it is not a scalar."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ScalarType.BOOLEAN
    if isinstance(value, int):
        return ScalarType.INTEGER
    if isinstance(value, str):
        return ScalarType.STRING
    if isinstance(value, EnumTag):
        return ScalarType.ENUM
    return None


def ensure_scalar(key: str, value: Any) -> Scalar:
    """
    Check that a value is a supported scalar.

    Raises:
        InvalidFactValueError: If the value is not str, bool, int or EnumTag
    """
    if scalar_type_of(value) is None:
        raise InvalidFactValueError(
            message=f"Fact '{key}' has unsupported value type {type(value).__name__}",
            details={"key": key, "type": type(value).__name__},
        )
    return value


def same_kind(left: Any, right: Any) -> bool:
    """True if two scalars are of the same ScalarType."""
    left_type = scalar_type_of(left)
    return left_type is not None and left_type == scalar_type_of(right)


def scalar_to_json(value: Scalar) -> Any:
    """Convert a scalar to its JSON form."""
    if isinstance(value, EnumTag):
        return value.to_json()
    return value


def scalar_from_json(key: str, raw: Any) -> Scalar:
    """
    Convert a JSON value back to a scalar.

    Raises:
        InvalidFactValueError: If the value is not a scalar JSON form
    """
    if isinstance(raw, dict):
        if set(raw) == {"enum"}:
            return EnumTag(raw["enum"])
        raise InvalidFactValueError(
            message=f"Fact '{key}' object form must be {{\"enum\": <tag>}}",
            details={"key": key, "keys": sorted(raw)},
        )
    return ensure_scalar(key, raw)


# =============================================================================
# FactSet
# =============================================================================

class FactSet(Mapping[str, Scalar]):
    """
    Immutable mapping of fact key to scalar value.

    `with_fact` returns a new FactSet; the receiver is never changed, so a
    caller's input snapshot is safe to reuse after evaluation.

    Usage:
        facts = FactSet({"citizenship": "US", "prior_rejected": True})
        value, found = facts.lookup("citizenship")
        derived = facts.with_fact("max_complexity_tier", 2)
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        checked: dict[str, Scalar] = {}
        for key, value in (data or {}).items():
            if not isinstance(key, str) or not key:
                raise InvalidFactValueError(
                    message="Fact keys must be non-empty strings",
                    details={"key": repr(key)},
                )
            checked[key] = ensure_scalar(key, value)
        self._data = MappingProxyType(checked)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> FactSet:
        """Build a FactSet from its JSON form (enum tags as {"enum": ...})."""
        if not isinstance(data, Mapping):
            raise InvalidFactValueError(
                message="Facts must be a JSON object",
                details={"type": type(data).__name__},
            )
        return cls({key: scalar_from_json(key, raw) for key, raw in data.items()})

    def lookup(self, key: str) -> tuple[Optional[Scalar], bool]:
        """Return (value, found). A missing key is (None, False)."""
        if key in self._data:
            return self._data[key], True
        return None, False

    def with_fact(self, key: str, value: Scalar) -> FactSet:
        """Return a copy of this FactSet with `key` set to `value`."""
        ensure_scalar(key, value)
        new = dict(self._data)
        new[key] = value
        return FactSet(new)

    def to_json(self) -> dict[str, Any]:
        """JSON form, keys sorted."""
        return {key: scalar_to_json(self._data[key]) for key in sorted(self._data)}

    def __getitem__(self, key: str) -> Scalar:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _signature(self) -> tuple:
        # repr keeps True and 1 apart
        return tuple(sorted((k, repr(v)) for k, v in self._data.items()))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FactSet):
            return self._signature() == other._signature()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._signature())

    def __repr__(self) -> str:
        return f"FactSet({dict(self._data)!r})"
