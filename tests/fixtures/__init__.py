"""Test fixtures for jsonmtz tests."""

from .records import (
    assert_records_equal,
    create_batch,
    create_full_record,
    create_minimal_record,
    create_p212121_symmetry,
    make_column,
)
from .trees import (
    create_minimal_tree,
    create_two_crystal_tree,
)

__all__ = [
    "assert_records_equal",
    "create_batch",
    "create_full_record",
    "create_minimal_record",
    "create_p212121_symmetry",
    "make_column",
    "create_minimal_tree",
    "create_two_crystal_tree",
]
