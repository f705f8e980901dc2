"""
Constants and enums for MTZ <-> JSON conversion.

Centralizes the JSON key names, field widths and fixed shapes of the
MTZ record so the forward and reverse mappers agree on the wire format.
"""

from enum import Enum


class NodeKind(str, Enum):
    """Dynamic type of a JSON tree node."""

    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    NULL = "null"


class ConversionStatus(str, Enum):
    """Outcome of a file-level conversion."""

    SUCCESS = "success"
    INPUT_UNREADABLE = "input_unreadable"
    CONVERSION_FAILED = "conversion_failed"


# Token written in place of a missing (unmeasured) reflection value
MISSING_TOKEN = "NaN"

# Fixed width of a history / unknown header record in an MTZ file
MTZ_RECORD_LENGTH = 80

# Maximum string lengths of the MTZ header fields
TITLE_LENGTH = 70
CRYSTAL_NAME_LENGTH = 64
PROJECT_NAME_LENGTH = 64
DATASET_NAME_LENGTH = 64
COLUMN_LABEL_LENGTH = 30
COLUMN_TYPE_LENGTH = 2
COLUMN_SOURCE_LENGTH = 36
GROUP_NAME_LENGTH = 30
GROUP_TYPE_LENGTH = 4
BATCH_TITLE_LENGTH = 70
AXIS_LABEL_LENGTH = 8
SPACE_GROUP_NAME_LENGTH = 20
POINT_GROUP_NAME_LENGTH = 10

# Sort order holds at most this many column references
SORT_ORDER_SLOTS = 5

# Symmetry operations are stored as a fixed 192 x 4 x 4 tensor
MAX_SYMMETRY_OPERATIONS = 192
SYMMETRY_SHAPE = (MAX_SYMMETRY_OPERATIONS, 4, 4)

# Indentation of non-compact JSON output
DEFAULT_INDENT = 4

# Top-level document keys, in output order
TOP_LEVEL_KEYS = (
    "Title",
    "History",
    "Crystals",
    "Symmetry",
    "Batches",
    "SortOrder",
    "UnknownHeaders",
)

# Keys that must be present for a document to be converted
REQUIRED_TOP_LEVEL_KEYS = (
    "Title",
    "Crystals",
    "History",
    "Symmetry",
    "Batches",
)

# Keys that may be absent or null and then count as empty
NULLABLE_TOP_LEVEL_KEYS = ("SortOrder", "UnknownHeaders")
