"""
Field tables shared by the entity mappers.

Crystals, datasets, columns, batches and the symmetry block are flat
collections of scalar and fixed-shape fields. Each is described by a
tuple of FieldDef entries naming the JSON key, the model attribute,
the JSON type and, for arrays, the exact dimensions. The same table
drives both directions, so the set of keys written is exactly the set
of keys read.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

import numpy as np

from ..constants import NodeKind
from ..shapes import (
    is_homogeneous_integer,
    is_homogeneous_real,
    is_homogeneous_string,
    node_kind,
    validate_shape,
)
from .base import MapperContext

_LEAF_CHECKS = {
    NodeKind.REAL: is_homogeneous_real,
    NodeKind.INTEGER: is_homogeneous_integer,
    NodeKind.STRING: is_homogeneous_string,
}

# MTZ files store reals as float32 and integers as int32
FLOAT32_MAX = float(np.finfo(np.float32).max)
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class FieldDef:
    """
    One field of an MTZ entity.

    Attributes:
        key: JSON key
        attr: Attribute name on the model dataclass
        kind: JSON type of the value, or of the leaves for arrays
        dims: Array dimensions, empty for scalars
        width: Maximum length of string values
    """

    key: str
    attr: str
    kind: NodeKind
    dims: tuple[int, ...] = ()
    width: Optional[int] = None

    @property
    def is_shaped(self) -> bool:
        return len(self.dims) > 0


def string_field(key: str, attr: str, width: int) -> FieldDef:
    return FieldDef(key, attr, NodeKind.STRING, width=width)


def integer_field(key: str, attr: str) -> FieldDef:
    return FieldDef(key, attr, NodeKind.INTEGER)


def real_field(key: str, attr: str) -> FieldDef:
    return FieldDef(key, attr, NodeKind.REAL)


def shaped_field(
    key: str,
    attr: str,
    dims: Sequence[int],
    kind: NodeKind = NodeKind.REAL,
    width: Optional[int] = None,
) -> FieldDef:
    return FieldDef(key, attr, kind, tuple(dims), width)


def _scalar_to_tree(value: Any, kind: NodeKind) -> Any:
    if kind is NodeKind.REAL:
        return float(value)
    if kind is NodeKind.INTEGER:
        return int(value)
    return str(value)


def field_to_tree(value: Any, fdef: FieldDef) -> Any:
    """Convert a model attribute to its JSON representation."""
    if not fdef.is_shaped:
        return _scalar_to_tree(value, fdef.kind)

    # float32 -> float is exact, so reals survive the round trip unchanged
    items = value.tolist() if isinstance(value, np.ndarray) else list(value)
    if len(fdef.dims) == 1:
        return [_scalar_to_tree(v, fdef.kind) for v in items]
    return items


def entity_to_tree(entity: Any, fields: Sequence[FieldDef]) -> dict[str, Any]:
    """Build a JSON object holding every field, in table order."""
    return {fdef.key: field_to_tree(getattr(entity, fdef.attr), fdef) for fdef in fields}


def _truncate(value: str, width: Optional[int]) -> str:
    return value if width is None else value[:width]


def fits_float32(value: float) -> bool:
    """
    True unless a finite value would overflow to infinity as a float32.

    Example:
        >>> fits_float32(1e38), fits_float32(1e39), fits_float32(float("inf"))
        (True, False, True)
    """
    return not math.isfinite(value) or abs(value) <= FLOAT32_MAX


def _in_range(value: Any, kind: NodeKind) -> bool:
    if kind is NodeKind.REAL:
        return fits_float32(value)
    if kind is NodeKind.INTEGER:
        return INT32_MIN <= value <= INT32_MAX
    return True


def _leaves(value: Any) -> Iterator[Any]:
    if isinstance(value, list):
        for item in value:
            yield from _leaves(item)
    else:
        yield value


def read_field(node: dict[str, Any], fdef: FieldDef, context: MapperContext, path: str) -> Any:
    """
    Extract one field from a JSON object.

    Returns:
        The converted value, or None if the key is absent, the value has
        the wrong type or shape, or a number does not fit its MTZ field.
        Present-but-invalid values are reported as warnings on the context.
    """
    if fdef.key not in node:
        return None

    value = node[fdef.key]
    field_path = f"{path}.{fdef.key}"

    if fdef.is_shaped:
        if not validate_shape(value, fdef.dims, _LEAF_CHECKS[fdef.kind]):
            context.skip_field(
                field_path,
                f"expected {fdef.kind.value} array of shape {list(fdef.dims)}",
            )
            return None
        if not all(_in_range(leaf, fdef.kind) for leaf in _leaves(value)):
            context.skip_field(field_path, f"{fdef.kind.value} value out of MTZ range")
            return None
        if fdef.kind is NodeKind.REAL:
            return np.array(value, dtype=np.float32)
        if fdef.kind is NodeKind.STRING:
            return [_truncate(v, fdef.width) for v in value]
        return list(value)

    kind = node_kind(value)
    if kind is not fdef.kind:
        context.skip_field(field_path, f"expected {fdef.kind.value}, got {kind.value}")
        return None
    if not _in_range(value, fdef.kind):
        context.skip_field(field_path, f"{fdef.kind.value} value out of MTZ range")
        return None
    if fdef.kind is NodeKind.STRING:
        return _truncate(value, fdef.width)
    return value


def populate_entity(
    entity: Any,
    node: dict[str, Any],
    fields: Sequence[FieldDef],
    context: MapperContext,
    path: str,
) -> None:
    """Copy every valid field from node onto entity."""
    for fdef in fields:
        value = read_field(node, fdef, context, path)
        if value is not None:
            setattr(entity, fdef.attr, value)
