"""
Tests for the in-memory MTZ record model.
"""

import math

import numpy as np
import pytest

from jsonmtz.constants import SORT_ORDER_SLOTS, SYMMETRY_SHAPE
from jsonmtz.model import Batch, Record, Symmetry, allocate_columns, allocate_record

from .fixtures import create_full_record, create_minimal_record


class TestAllocation:
    """Tests for allocate_record and allocate_columns."""

    def test_allocate_hierarchy(self):
        record = allocate_record([1, 2], nref=5)

        assert record.nref == 5
        assert len(record.crystals) == 2
        assert [len(c.datasets) for c in record.crystals] == [1, 2]
        assert record.sort_order == [None] * SORT_ORDER_SLOTS

    def test_allocate_columns_fills_missing_value(self):
        record = allocate_record([1], nref=4)
        dataset = allocate_columns(record.crystals[0].datasets[0], 2, 4)

        assert len(dataset.columns) == 2
        for column in dataset.columns:
            assert column.data.dtype == np.float32
            assert column.data.shape == (4,)
            assert np.all(np.isnan(column.data))

    def test_allocate_with_numeric_missing_value(self):
        record = allocate_record([1], nref=2, missing_value=-999.0)
        dataset = allocate_columns(record.crystals[0].datasets[0], 1, 2, -999.0)

        assert record.missing_value == -999.0
        assert dataset.columns[0].data.tolist() == [-999.0, -999.0]

    def test_zero_reflections(self):
        record = allocate_record([1], nref=0)
        dataset = allocate_columns(record.crystals[0].datasets[0], 1, 0)
        assert dataset.columns[0].data.size == 0

    def test_no_crystals_rejected(self):
        with pytest.raises(ValueError):
            allocate_record([], nref=1)

    def test_negative_nref_rejected(self):
        with pytest.raises(ValueError):
            allocate_record([1], nref=-1)


class TestDefaults:
    """Default values of new entities."""

    def test_batch_shapes(self):
        batch = Batch()
        assert batch.detector_limits.shape == (2, 2, 2)
        assert batch.missetting_angles.shape == (2, 3)
        assert batch.axes_labels == ["", "", ""]
        assert batch.cell_refinement_flags == [0] * 6

    def test_symmetry_shape(self):
        assert Symmetry().operations.shape == SYMMETRY_SHAPE

    def test_defaults_are_not_shared(self):
        a, b = Batch(), Batch()
        a.cell[0] = 1.0
        assert b.cell[0] == 0.0


class TestRecord:
    """Tests for Record helpers."""

    def test_is_missing_with_nan_marker(self):
        record = Record()
        assert record.is_missing(float("nan")) is True
        assert record.is_missing(0.0) is False

    def test_is_missing_with_numeric_marker(self):
        record = Record(missing_value=-1.0)
        assert record.is_missing(-1.0) is True
        assert record.is_missing(float("nan")) is False

    def test_iter_columns_order(self):
        record = create_full_record()
        labels = [c.label for c in record.iter_columns()]
        assert labels == ["H", "K", "L", "FP", "SIGFP", "FP"]

    def test_find_column_by_source(self):
        record = create_full_record()
        assert record.find_column_by_source(5).label == "SIGFP"
        assert record.find_column_by_source(99) is None

    def test_find_column_first_match_wins(self):
        record = create_minimal_record()
        first, second = record.crystals[0].datasets[0].columns
        second.source = first.source
        assert record.find_column_by_source(first.source) is first

    def test_add_history_line(self):
        record = create_minimal_record()
        record.add_history_line("new")
        assert record.history[-1] == "new"

    def test_missing_value_default_is_nan(self):
        assert math.isnan(Record().missing_value)
