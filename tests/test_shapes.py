"""
Tests for JSON node classification and shape validation.
"""

import pytest

from jsonmtz.constants import NodeKind
from jsonmtz.shapes import (
    always_true,
    is_homogeneous_array,
    is_homogeneous_integer,
    is_homogeneous_object,
    is_homogeneous_real,
    is_homogeneous_string,
    is_kind,
    node_kind,
    validate_shape,
)


class TestNodeKind:
    """Tests for node_kind and is_kind."""

    @pytest.mark.parametrize(
        "node, kind",
        [
            ({}, NodeKind.OBJECT),
            ([], NodeKind.ARRAY),
            ("x", NodeKind.STRING),
            (3, NodeKind.INTEGER),
            (3.0, NodeKind.REAL),
            (True, NodeKind.BOOLEAN),
            (None, NodeKind.NULL),
        ],
    )
    def test_classifies_json_values(self, node, kind):
        assert node_kind(node) is kind

    def test_boolean_is_not_integer(self):
        """bool subclasses int in Python but is its own JSON type."""
        assert is_kind(False, NodeKind.INTEGER) is False
        assert is_kind(False, NodeKind.BOOLEAN) is True

    def test_foreign_object_raises(self):
        with pytest.raises(TypeError):
            node_kind(object())

    def test_is_kind_never_raises(self):
        assert is_kind(object(), NodeKind.OBJECT) is False


class TestHomogeneity:
    """Tests for the is_homogeneous_* predicates."""

    def test_empty_array_is_homogeneous(self):
        assert is_homogeneous_real([]) is True
        assert is_homogeneous_object([]) is True

    def test_non_array_is_not_homogeneous(self):
        assert is_homogeneous_string("abc") is False
        assert is_homogeneous_object({}) is False

    def test_mixed_array(self):
        assert is_homogeneous_real([1.0, 2]) is False
        assert is_homogeneous_integer([1, 2]) is True
        assert is_homogeneous_integer([1, True]) is False

    def test_nested(self):
        assert is_homogeneous_array([[1], []]) is True
        assert is_homogeneous_array([[1], {}]) is False
        assert is_homogeneous_object([{}, {"a": 1}]) is True


class TestValidateShape:
    """Tests for validate_shape."""

    MATRIX = [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]

    def test_matching_dimensions(self):
        assert validate_shape(self.MATRIX, [2, 3], is_homogeneous_real) is True

    def test_transposed_dimensions(self):
        assert validate_shape(self.MATRIX, [3, 2], is_homogeneous_real) is False

    def test_wrong_leaf_type_in_one_row(self):
        node = [[1.0, 2.0, 3.0], [4.0, "x", 6.0]]
        assert validate_shape(node, [2, 3], is_homogeneous_real) is False

    def test_integer_leaves_are_not_reals(self):
        node = [[1, 2, 3], [4, 5, 6]]
        assert validate_shape(node, [2, 3], is_homogeneous_real) is False
        assert validate_shape(node, [2, 3], is_homogeneous_integer) is True

    def test_ragged_rows(self):
        node = [[1.0, 2.0, 3.0], [4.0, 5.0]]
        assert validate_shape(node, [2, 3], is_homogeneous_real) is False

    def test_default_leaf_check_only_counts(self):
        assert validate_shape([["a", 1, None]], [1, 3]) is True
        assert always_true(None) is True

    def test_non_array_node(self):
        assert validate_shape({"a": 1}, [1]) is False
        assert validate_shape(1.0, [1]) is False

    def test_scalar_where_row_expected(self):
        assert validate_shape([1.0, 2.0], [2, 1], is_homogeneous_real) is False

    def test_empty_dims(self):
        assert validate_shape([], []) is True
        assert validate_shape([1.0], []) is False

    def test_three_dimensions(self):
        node = [[[0.0, 1.0], [2.0, 3.0]], [[4.0, 5.0], [6.0, 7.0]]]
        assert validate_shape(node, (2, 2, 2), is_homogeneous_real) is True
        assert validate_shape(node, (2, 2, 3), is_homogeneous_real) is False

    def test_symmetry_tensor(self):
        row = [0.0, 0.0, 0.0, 0.0]
        node = [[list(row) for _ in range(4)] for _ in range(192)]
        assert validate_shape(node, (192, 4, 4), is_homogeneous_real) is True
        node[191][3] = [0.0, 0.0, 0.0]
        assert validate_shape(node, (192, 4, 4), is_homogeneous_real) is False
