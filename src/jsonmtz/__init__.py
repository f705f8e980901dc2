"""
jsonmtz - MTZ <-> JSON converter.

Convert MTZ reflection files, the binary format used throughout X-ray
crystallography, to a human-readable JSON document and back.

CLI usage::

    mtz2json in.mtz out.json
    json2mtz in.json out.mtz
    jsonmtz validate out.json

Programmatic usage::

    from jsonmtz import JsonMtzConverter

    converter = JsonMtzConverter(add_provenance=False)
    tree = converter.export_to_tree(record)
    record = converter.import_from_tree(tree)
"""

__version__ = "1.0.9"

from .converter import ConversionResult, JsonMtzConverter
from .errors import RecordIOError, StructuralError, TreeSyntaxError
from .forward import record_to_tree
from .model import Record
from .reverse import tree_to_record
from .shapes import validate_shape

__all__ = [
    "ConversionResult",
    "JsonMtzConverter",
    "Record",
    "RecordIOError",
    "StructuralError",
    "TreeSyntaxError",
    "record_to_tree",
    "tree_to_record",
    "validate_shape",
    "__version__",
]
