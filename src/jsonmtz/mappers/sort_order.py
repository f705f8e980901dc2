"""
Sort order mapper.

The sort order references columns by their ColumnID. It must be
populated after the crystal hierarchy exists so the ids can be
resolved to columns.
"""

import logging
from typing import Any, Optional

from ..constants import SORT_ORDER_SLOTS
from ..model import Record
from ..shapes import is_homogeneous_integer
from .base import Mapper, MapperContext

logger = logging.getLogger(__name__)


class SortOrderMapper(Mapper):
    """
    Maps the sort order as a list of ColumnIDs.

    Unset slots are omitted on output. On input, ids are resolved by
    searching the whole hierarchy (first match wins); an id that matches
    no column leaves its slot unset.
    """

    @property
    def block_name(self) -> str:
        return "SortOrder"

    def to_tree(self, record: Record, context: MapperContext) -> list[int]:
        return [int(column.source) for column in record.sort_order if column is not None]

    def populate(self, record: Record, node: Optional[Any], context: MapperContext) -> None:
        if node is None:
            return
        if not is_homogeneous_integer(node):
            context.skip_field("SortOrder", "expected an array of integers")
            return
        if len(node) > SORT_ORDER_SLOTS:
            context.add_warning(
                f"SortOrder: {len(node)} entries, only the first {SORT_ORDER_SLOTS} are used"
            )

        slots: list = [None] * SORT_ORDER_SLOTS
        for index, source in enumerate(node[:SORT_ORDER_SLOTS]):
            column = record.find_column_by_source(source)
            if column is None:
                logger.debug(f"SortOrder[{index}]: no column with ColumnID {source}")
            slots[index] = column
        record.sort_order = slots
