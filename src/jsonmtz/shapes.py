"""
Shape and type checks for JSON tree nodes.

Every fixed-size field of an MTZ record (cell constants, orientation
matrices, the symmetry operation tensor, ...) is represented in JSON as
nested arrays. Before such a field is copied into a record, the node is
checked to have exactly the expected dimensions and leaf type. No
coercion is performed: an integer never passes where a real is expected.
"""

from typing import Any, Callable, Sequence

from .constants import NodeKind

LeafCheck = Callable[[list], bool]


def node_kind(node: Any) -> NodeKind:
    """
    Classify a parsed JSON value.

    Booleans are checked before integers because ``bool`` is a subclass
    of ``int`` in Python but a distinct JSON type.

    Raises:
        TypeError: If the value cannot come out of a JSON parser
    """
    if node is None:
        return NodeKind.NULL
    if isinstance(node, bool):
        return NodeKind.BOOLEAN
    if isinstance(node, int):
        return NodeKind.INTEGER
    if isinstance(node, float):
        return NodeKind.REAL
    if isinstance(node, str):
        return NodeKind.STRING
    if isinstance(node, list):
        return NodeKind.ARRAY
    if isinstance(node, dict):
        return NodeKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(node).__name__}")


def is_kind(node: Any, kind: NodeKind) -> bool:
    """Check a node's kind without raising on foreign Python objects."""
    try:
        return node_kind(node) is kind
    except TypeError:
        return False


def _is_homogeneous(node: Any, kind: NodeKind) -> bool:
    if not is_kind(node, NodeKind.ARRAY):
        return False
    return all(is_kind(item, kind) for item in node)


def is_homogeneous_object(node: Any) -> bool:
    """True if node is an array containing only objects."""
    return _is_homogeneous(node, NodeKind.OBJECT)


def is_homogeneous_array(node: Any) -> bool:
    """True if node is an array containing only arrays."""
    return _is_homogeneous(node, NodeKind.ARRAY)


def is_homogeneous_string(node: Any) -> bool:
    """True if node is an array containing only strings."""
    return _is_homogeneous(node, NodeKind.STRING)


def is_homogeneous_integer(node: Any) -> bool:
    """True if node is an array containing only integers."""
    return _is_homogeneous(node, NodeKind.INTEGER)


def is_homogeneous_real(node: Any) -> bool:
    """True if node is an array containing only reals."""
    return _is_homogeneous(node, NodeKind.REAL)


def always_true(node: Any) -> bool:
    """Leaf check used when only the cardinality matters."""
    return True


def validate_shape(
    node: Any,
    dims: Sequence[int],
    leaf_check: LeafCheck = always_true,
) -> bool:
    """
    Check that a node is nested arrays of exactly the given dimensions.

    Args:
        node: The JSON node to check
        dims: Expected dimensions, outermost first, e.g. (2, 3) for a
              2 x 3 matrix. An empty sequence only matches an empty array.
        leaf_check: Check applied to each innermost array, e.g.
                    is_homogeneous_real

    Returns:
        True if every level has the expected length and every innermost
        array passes leaf_check. Fails on the first mismatch.

    Example:
        >>> validate_shape([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], (2, 3), is_homogeneous_real)
        True
        >>> validate_shape([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], (3, 2), is_homogeneous_real)
        False
    """
    if not is_kind(node, NodeKind.ARRAY):
        return False

    if len(dims) == 0:
        return len(node) == 0

    if len(node) != dims[0]:
        return False

    if len(dims) == 1:
        return bool(leaf_check(node))

    for element in node:
        if not validate_shape(element, dims[1:], leaf_check):
            return False

    return True
