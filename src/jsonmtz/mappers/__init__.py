"""
Mappers between the MTZ record model and JSON document blocks.

Each mapper owns one top-level key of the JSON document and converts it
in both directions.
"""

from .base import Mapper, MapperContext
from .batches import BatchesMapper
from .crystals import CrystalsMapper
from .headers import HistoryMapper, TitleMapper, UnknownHeadersMapper
from .sort_order import SortOrderMapper
from .symmetry import SymmetryMapper


def default_mappers() -> list[Mapper]:
    """
    Create the mappers for every document block.

    Returns list of mapper instances in population order.
    Order matters: SortOrderMapper resolves column ids against the
    columns CrystalsMapper has filled in.
    """
    return [
        TitleMapper(),
        HistoryMapper(),
        SymmetryMapper(),
        BatchesMapper(),
        CrystalsMapper(),
        # Needs the populated columns
        SortOrderMapper(),
        UnknownHeadersMapper(),
    ]


__all__ = [
    "Mapper",
    "MapperContext",
    "default_mappers",
    "TitleMapper",
    "HistoryMapper",
    "SymmetryMapper",
    "BatchesMapper",
    "CrystalsMapper",
    "SortOrderMapper",
    "UnknownHeadersMapper",
]
