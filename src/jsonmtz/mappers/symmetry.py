"""
Symmetry block mapper.

Maps the space group description and the full table of symmetry
operation matrices.
"""

from typing import Any

from ..constants import (
    POINT_GROUP_NAME_LENGTH,
    SPACE_GROUP_NAME_LENGTH,
    SYMMETRY_SHAPE,
    NodeKind,
)
from ..model import Record
from ..shapes import is_kind
from .base import Mapper, MapperContext
from .fields import (
    entity_to_tree,
    integer_field,
    populate_entity,
    shaped_field,
    string_field,
)

SYMMETRY_FIELDS = (
    integer_field("SpaceGroupNumber", "space_group_number"),
    string_field("SpaceGroupName", "space_group_name", SPACE_GROUP_NAME_LENGTH),
    string_field("PointGroupName", "point_group_name", POINT_GROUP_NAME_LENGTH),
    string_field("SpaceGroupConfidence", "space_group_confidence", 1),
    integer_field("NumberOfSymmetryOperations", "nsym"),
    integer_field("NumberOfPrimitiveSymmetryOperations", "nsymp"),
    shaped_field("SymmetryOperations", "operations", SYMMETRY_SHAPE),
    string_field("LatticeType", "lattice_type", 1),
)


class SymmetryMapper(Mapper):
    """
    Maps the symmetry block.

    JSON Schema:
    ```json
    "Symmetry": {
        "SpaceGroupNumber": 19,
        "SpaceGroupName": "P 21 21 21",
        "PointGroupName": "PG222",
        "SpaceGroupConfidence": "X",
        "NumberOfSymmetryOperations": 4,
        "NumberOfPrimitiveSymmetryOperations": 4,
        "SymmetryOperations": [[[1.0, 0.0, 0.0, 0.0], ...], ...],
        "LatticeType": "P"
    }
    ```

    SymmetryOperations always holds 192 4 x 4 matrices; only the first
    NumberOfSymmetryOperations are meaningful. The confidence flag and
    lattice type are single characters.
    """

    @property
    def block_name(self) -> str:
        return "Symmetry"

    def is_required(self) -> bool:
        return True

    def to_tree(self, record: Record, context: MapperContext) -> dict[str, Any]:
        return entity_to_tree(record.symmetry, SYMMETRY_FIELDS)

    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        if not is_kind(node, NodeKind.OBJECT):
            context.skip_field("Symmetry", "expected an object")
            return
        populate_entity(record.symmetry, node, SYMMETRY_FIELDS, context, "Symmetry")
