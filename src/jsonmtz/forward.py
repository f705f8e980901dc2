"""
Record -> JSON tree mapping.

Runs every block mapper over a Record and assembles the JSON document.
"""

import logging
from typing import Any, Optional

from .constants import TOP_LEVEL_KEYS
from .mappers import Mapper, MapperContext, default_mappers
from .model import Record

logger = logging.getLogger(__name__)

# Blocks are built in this order; the document keys follow TOP_LEVEL_KEYS
FORWARD_ORDER = (
    "Crystals",
    "Batches",
    "History",
    "Symmetry",
    "SortOrder",
    "UnknownHeaders",
    "Title",
)


def record_to_tree(
    record: Record,
    context: Optional[MapperContext] = None,
    mappers: Optional[list[Mapper]] = None,
) -> dict[str, Any]:
    """
    Convert a Record to a JSON document tree.

    Args:
        record: A fully populated record
        context: Conversion settings (missing token, header halving)
        mappers: Block mappers to use. Defaults to default_mappers().

    Returns:
        Dict with one key per mapper, ordered as in TOP_LEVEL_KEYS
    """
    context = context or MapperContext()
    by_name = {mapper.block_name: mapper for mapper in (mappers or default_mappers())}

    order = [name for name in FORWARD_ORDER if name in by_name]
    order += [name for name in by_name if name not in order]

    blocks: dict[str, Any] = {}
    for name in order:
        blocks[name] = by_name[name].to_tree(record, context)

    tree = {key: blocks.pop(key) for key in TOP_LEVEL_KEYS if key in blocks}
    tree.update(blocks)

    logger.debug(
        f"Mapped record with {len(record.crystals)} crystal(s), "
        f"{len(record.batches)} batch(es), {record.nref} reflection(s)"
    )
    return tree
