"""
Edge case tests for MTZ <-> JSON conversion.

Tests handling of missing fields, malformed values, unusual numbers
and other boundary conditions.
"""

import json
import math

import numpy as np
import pytest

from jsonmtz.errors import StructuralError
from jsonmtz.forward import record_to_tree
from jsonmtz.mappers import MapperContext
from jsonmtz.reverse import tree_to_record

from .fixtures import create_minimal_record, create_minimal_tree, create_two_crystal_tree


def first_column(tree: dict) -> dict:
    return tree["Crystals"][0]["Datasets"][0]["Columns"][0]


class TestMalformedInput:
    """Malformed values inside an otherwise valid document."""

    def test_integer_data_accepted(self):
        """Integers are valid reflection values."""
        tree = create_minimal_tree()
        first_column(tree)["Data"] = [1, 2, 3]

        record = tree_to_record(tree)
        assert record.crystals[0].datasets[0].columns[0].data.tolist() == [1.0, 2.0, 3.0]

    def test_nan_literal_is_missing(self):
        """A bare NaN literal parses to a float NaN and is missing."""
        tree = json.loads(json.dumps(create_minimal_tree()).replace('"NaN"', "NaN"))

        record = tree_to_record(tree)
        column = record.crystals[0].datasets[0].columns[0]
        assert record.is_missing(column.data[1])

    def test_infinity_survives(self):
        """Infinite values are numbers, not missing values."""
        record = create_minimal_record()
        record.crystals[0].datasets[0].columns[1].data[0] = np.inf

        tree = json.loads(json.dumps(record_to_tree(record)))
        restored = tree_to_record(tree)

        assert math.isinf(restored.crystals[0].datasets[0].columns[1].data[0])

    def test_column_id_as_real_skipped(self):
        """ColumnID must be an integer."""
        tree = create_minimal_tree()
        first_column(tree)["ColumnID"] = 1.0
        context = MapperContext()

        record = tree_to_record(tree, context)

        assert record.crystals[0].datasets[0].columns[0].source == 0
        assert context.warnings == [
            "Crystals[0].Datasets[0].Columns[0].ColumnID: expected integer, got real, default kept"
        ]

    def test_null_field_skipped(self):
        """null is never a valid field value."""
        tree = create_minimal_tree()
        tree["Crystals"][0]["Datasets"][0]["Wavelength"] = None
        context = MapperContext()

        tree_to_record(tree, context)

        assert "expected real, got null" in context.warnings[0]

    def test_one_bad_column_does_not_affect_others(self):
        tree = create_minimal_tree()
        first_column(tree)["Label"] = ["FP"]
        tree["Crystals"][0]["Datasets"][0]["Columns"][1]["Label"] = "SIGFP"

        record = tree_to_record(tree)
        columns = record.crystals[0].datasets[0].columns
        assert columns[0].label == ""
        assert columns[1].label == "SIGFP"

    def test_extra_keys_ignored(self):
        """Unknown keys at any level are ignored without warnings."""
        tree = create_minimal_tree()
        tree["Generator"] = "hand written"
        first_column(tree)["Comment"] = "first"
        context = MapperContext()

        tree_to_record(tree, context)

        assert not context.has_warnings

    def test_huge_integer_data_skipped(self):
        """An integer too large for a float keeps the missing default."""
        tree = create_minimal_tree()
        tree["Crystals"][0]["Datasets"][0]["Columns"][1]["Data"][0] = 10**400
        context = MapperContext()

        record = tree_to_record(tree, context)

        column = record.crystals[0].datasets[0].columns[1]
        assert record.is_missing(column.data[0])
        assert column.data[1:].tolist() == [5.0, 6.0]
        assert context.warnings == [
            "Crystals[0].Datasets[0].Columns[1].Data: "
            "1 value(s) out of float32 range, default kept"
        ]

    def test_real_data_beyond_float32_skipped(self):
        """Finite reals that would become infinite as float32 are skipped."""
        tree = create_minimal_tree()
        first_column(tree)["Data"] = [1e39, -1e39, 3.0e38]
        context = MapperContext()

        record = tree_to_record(tree, context)

        data = record.crystals[0].datasets[0].columns[0].data
        assert record.is_missing(data[0])
        assert record.is_missing(data[1])
        assert np.isfinite(data[2])
        assert "2 value(s) out of float32 range" in context.warnings[0]

    def test_integer_field_beyond_int32_skipped(self):
        """MTZ integers are 32-bit; larger values keep the default."""
        tree = create_minimal_tree()
        tree["Batches"] = [{"BatchNumber": 2**40}]
        first_column(tree)["ColumnID"] = -(2**31) - 1
        context = MapperContext()

        record = tree_to_record(tree, context)

        assert record.batches[0].number == 0
        assert record.crystals[0].datasets[0].columns[0].source == 0
        assert sorted(context.warnings) == [
            "Batches[0].BatchNumber: integer value out of MTZ range, default kept",
            "Crystals[0].Datasets[0].Columns[0].ColumnID: "
            "integer value out of MTZ range, default kept",
        ]

    def test_real_field_beyond_float32_skipped(self):
        tree = create_minimal_tree()
        tree["Crystals"][0]["Datasets"][0]["Wavelength"] = 1e300
        tree["Crystals"][0]["CellConstants"] = [1e39, 1.0, 1.0, 90.0, 90.0, 90.0]
        context = MapperContext()

        record = tree_to_record(tree, context)

        assert record.crystals[0].datasets[0].wavelength == 0.0
        assert record.crystals[0].cell.tolist() == [0.0] * 6
        assert len(context.warnings) == 2

    def test_structural_error_message_has_path(self):
        tree = create_two_crystal_tree()
        tree["Crystals"][1]["Datasets"][0]["Columns"] = {}

        with pytest.raises(StructuralError, match=r"Crystals\[1\]\.Datasets\[0\]\.Columns"):
            tree_to_record(tree)


class TestBoundaryConditions:
    """Tests for sizes and string widths."""

    def test_single_reflection(self):
        tree = create_minimal_tree()
        for column in tree["Crystals"][0]["Datasets"][0]["Columns"]:
            column["Data"] = ["NaN"]

        record = tree_to_record(tree)
        assert record.nref == 1

    def test_large_dataset(self):
        """Large columns should convert without issues."""
        n = 100_000
        tree = create_minimal_tree()
        first_column(tree)["Data"] = [float(i) for i in range(n)]
        tree["Crystals"][0]["Datasets"][0]["Columns"][1]["Data"] = ["NaN"] * n

        record = tree_to_record(tree)
        out = record_to_tree(record)

        assert record.nref == n
        assert first_column(out)["Data"][-1] == float(n - 1)

    def test_long_strings_truncated(self):
        """Strings longer than their MTZ field are cut to size."""
        tree = create_minimal_tree()
        tree["Title"] = "T" * 100
        tree["Crystals"][0]["CrystalName"] = "C" * 100
        first_column(tree)["Label"] = "L" * 100
        first_column(tree)["Type"] = "FQ"

        record = tree_to_record(tree)

        assert len(record.title) == 70
        assert len(record.crystals[0].name) == 64
        assert len(record.crystals[0].datasets[0].columns[0].label) == 30
        assert record.crystals[0].datasets[0].columns[0].type == "FQ"

    def test_unicode_characters(self):
        """Non-ASCII text should be preserved."""
        tree = create_minimal_tree()
        tree["Title"] = "Lysozyme Å résolution"

        record = tree_to_record(tree)
        assert record_to_tree(record)["Title"] == "Lysozyme Å résolution"

    def test_history_line_width(self):
        record = create_minimal_record()
        record.history = ["H" * 120]
        assert record_to_tree(record)["History"] == ["H" * 80]

    def test_many_datasets(self):
        tree = create_minimal_tree()
        dataset = tree["Crystals"][0]["Datasets"][0]
        tree["Crystals"][0]["Datasets"] = [json.loads(json.dumps(dataset)) for _ in range(20)]

        record = tree_to_record(tree)
        assert len(record.crystals[0].datasets) == 20
        assert sum(1 for _ in record.iter_columns()) == 40


class TestWarningsAndErrors:
    """Tests for warning propagation."""

    def test_warnings_accumulate_across_blocks(self):
        tree = create_minimal_tree()
        tree["Title"] = "ok"
        tree["Symmetry"]["LatticeType"] = 1
        tree["Batches"] = [{"Theta": [0.0]}]
        tree["SortOrder"] = ["H"]
        context = MapperContext()

        tree_to_record(tree, context)

        assert [w.split(":")[0] for w in context.warnings] == [
            "Symmetry.LatticeType",
            "Batches[0].Theta",
            "SortOrder",
        ]
