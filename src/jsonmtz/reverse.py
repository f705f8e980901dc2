"""
JSON tree -> Record mapping.

The input tree is untrusted. It is converted in two phases:

1. Measure (read-only): check the document's container structure,
   count crystals, datasets and columns, and require every column to
   hold the same number of reflections. Any problem raises
   StructuralError before anything is allocated.
2. Allocate and populate: build a Record of exactly the measured size
   and let each block mapper copy in the fields that have the expected
   type and shape. Invalid fields keep their defaults and are reported
   as warnings.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .constants import NULLABLE_TOP_LEVEL_KEYS, REQUIRED_TOP_LEVEL_KEYS, TOP_LEVEL_KEYS, NodeKind
from .errors import StructuralError
from .mappers import Mapper, MapperContext, default_mappers
from .model import Record, allocate_columns, allocate_record
from .shapes import is_homogeneous_object, is_kind

logger = logging.getLogger(__name__)

# Container kind each top-level key must have
TOP_LEVEL_KINDS = {
    "Title": NodeKind.STRING,
    "Crystals": NodeKind.ARRAY,
    "History": NodeKind.ARRAY,
    "Symmetry": NodeKind.OBJECT,
    "Batches": NodeKind.ARRAY,
    "SortOrder": NodeKind.ARRAY,
    "UnknownHeaders": NodeKind.ARRAY,
}


@dataclass
class TreeLayout:
    """
    Sizes of the crystal hierarchy measured from a JSON tree.

    Attributes:
        dataset_counts: Number of datasets of each crystal
        column_counts: Number of columns of each dataset, per crystal
        nref: Number of reflections shared by every column
    """

    dataset_counts: list[int]
    column_counts: list[list[int]]
    nref: int

    @property
    def ncrystals(self) -> int:
        return len(self.dataset_counts)

    @property
    def ncolumns(self) -> int:
        return sum(sum(counts) for counts in self.column_counts)


def check_document(tree: Any) -> None:
    """
    Check the top-level keys of a document.

    Raises:
        StructuralError: If the tree is not an object, a required key is
            missing, or a key holds the wrong kind of value
    """
    if not is_kind(tree, NodeKind.OBJECT):
        raise StructuralError("Document must be a JSON object")

    for key in REQUIRED_TOP_LEVEL_KEYS:
        if key not in tree:
            raise StructuralError("Required key is missing", path=key)

    for key in TOP_LEVEL_KEYS:
        value = tree.get(key)
        if value is None and key in NULLABLE_TOP_LEVEL_KEYS:
            continue
        if not is_kind(value, TOP_LEVEL_KINDS[key]):
            raise StructuralError(f"Expected {TOP_LEVEL_KINDS[key].value}", path=key)

    extra = sorted(set(tree) - set(TOP_LEVEL_KEYS))
    if extra:
        logger.debug(f"Ignoring unknown top-level keys: {', '.join(extra)}")


def _require_objects(node: dict[str, Any], key: str, path: str) -> list[dict[str, Any]]:
    """Return node[key] if it is a non-empty array of objects."""
    value = node.get(key)
    if not is_homogeneous_object(value) or len(value) == 0:
        raise StructuralError("Expected a non-empty array of objects", path=f"{path}.{key}")
    return value


def measure_tree(tree: Any) -> TreeLayout:
    """
    Measure the crystal hierarchy of a document without modifying it.

    Returns:
        TreeLayout with the dataset, column and reflection counts

    Raises:
        StructuralError: If the document structure is invalid or the
            columns do not all have the same length
    """
    check_document(tree)

    crystals = tree["Crystals"]
    if not is_homogeneous_object(crystals) or len(crystals) == 0:
        raise StructuralError("Expected a non-empty array of objects", path="Crystals")

    # Pass 1: count datasets, columns and reflections
    dataset_counts: list[int] = []
    column_counts: list[list[int]] = []
    lengths: list[tuple[str, int]] = []

    for xi, crystal in enumerate(crystals):
        xpath = f"Crystals[{xi}]"
        datasets = _require_objects(crystal, "Datasets", xpath)
        dataset_counts.append(len(datasets))

        counts = []
        for si, dataset in enumerate(datasets):
            spath = f"{xpath}.Datasets[{si}]"
            columns = _require_objects(dataset, "Columns", spath)
            counts.append(len(columns))

            for ci, column in enumerate(columns):
                cpath = f"{spath}.Columns[{ci}]"
                data = column.get("Data")
                if not is_kind(data, NodeKind.ARRAY):
                    raise StructuralError("Expected an array", path=f"{cpath}.Data")
                lengths.append((cpath, len(data)))
        column_counts.append(counts)

    # Pass 2: the first column fixes nref
    nref = lengths[0][1]
    for cpath, length in lengths:
        if length != nref:
            raise StructuralError(
                f"Column has {length} reflection(s), expected {nref}", path=f"{cpath}.Data"
            )

    return TreeLayout(dataset_counts=dataset_counts, column_counts=column_counts, nref=nref)


def allocate_from_layout(layout: TreeLayout, missing_value: float) -> Record:
    """Allocate a Record sized exactly to a measured layout."""
    record = allocate_record(layout.dataset_counts, layout.nref, missing_value)
    for crystal, counts in zip(record.crystals, layout.column_counts):
        for dataset, ncol in zip(crystal.datasets, counts):
            allocate_columns(dataset, ncol, layout.nref, missing_value)
    return record


def tree_to_record(
    tree: Any,
    context: Optional[MapperContext] = None,
    mappers: Optional[list[Mapper]] = None,
) -> Record:
    """
    Convert a JSON document tree to a Record.

    Args:
        tree: Parsed JSON document
        context: Conversion settings; collects skipped-field warnings
        mappers: Block mappers to use, in population order. Defaults to
                 default_mappers().

    Returns:
        A newly allocated, fully populated Record

    Raises:
        StructuralError: If the document cannot describe an MTZ record.
            Nothing is allocated in that case.
    """
    context = context or MapperContext()
    mappers = mappers or default_mappers()

    layout = measure_tree(tree)
    for mapper in mappers:
        if mapper.is_required() and mapper.block_name not in tree:
            raise StructuralError("Required key is missing", path=mapper.block_name)

    # Sole mutation point: everything below writes into the new record
    record = allocate_from_layout(layout, context.missing_value)

    for mapper in mappers:
        mapper.populate(record, tree.get(mapper.block_name), context)

    logger.debug(
        f"Built record with {layout.ncrystals} crystal(s), {layout.ncolumns} column(s), "
        f"{layout.nref} reflection(s); {len(context.warnings)} field(s) skipped"
    )
    return record
