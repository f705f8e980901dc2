"""
Tests for Record -> JSON tree mapping.
"""

import json

from jsonmtz.constants import TOP_LEVEL_KEYS
from jsonmtz.forward import record_to_tree
from jsonmtz.mappers import MapperContext, TitleMapper

from .fixtures import create_full_record, create_minimal_record


class TestRecordToTree:
    """Tests for record_to_tree."""

    def test_key_order(self):
        tree = record_to_tree(create_full_record())
        assert tuple(tree) == TOP_LEVEL_KEYS

    def test_minimal_record(self):
        tree = record_to_tree(create_minimal_record())

        assert tree["Title"] == "minimal"
        assert tree["History"] == ["created"]
        assert tree["Batches"] == []
        assert tree["SortOrder"] == []
        assert tree["UnknownHeaders"] == []
        data = [c["Data"] for c in tree["Crystals"][0]["Datasets"][0]["Columns"]]
        assert data == [[1.0, "NaN", 3.0], [4.0, 5.0, 6.0]]

    def test_full_record(self):
        tree = record_to_tree(create_full_record())

        assert len(tree["Crystals"]) == 2
        assert [d["DatasetName"] for d in tree["Crystals"][1]["Datasets"]] == ["peak", "remote"]
        assert tree["SortOrder"] == [1, 2, 3]
        assert tree["UnknownHeaders"] == ["PROJECT   1 proj"]
        assert tree["Symmetry"]["NumberOfSymmetryOperations"] == 4
        assert tree["Batches"][0]["BatchNumber"] == 1

    def test_tree_is_json_serializable(self):
        tree = record_to_tree(create_full_record())
        text = json.dumps(tree)
        assert json.loads(text) == tree

    def test_does_not_modify_record(self):
        record = create_full_record()
        record_to_tree(record)

        assert record.unknown_headers == ["PROJECT   1 proj", "PROJECT   1 proj"]
        assert record.history == ["From SCALA", "From TRUNCATE"]

    def test_context_settings_are_used(self):
        context = MapperContext(missing_token="missing", halve_unknown_headers=False)
        tree = record_to_tree(create_full_record(), context)

        assert tree["UnknownHeaders"] == ["PROJECT   1 proj", "PROJECT   1 proj"]
        assert tree["Crystals"][1]["Datasets"][1]["Columns"][0]["Data"][:2] == [
            "missing",
            "missing",
        ]

    def test_custom_mappers(self):
        tree = record_to_tree(create_minimal_record(), mappers=[TitleMapper()])
        assert tree == {"Title": "minimal"}
