"""
Exceptions raised during MTZ <-> JSON conversion.

Structural problems abort a conversion; field-level problems are only
reported as warnings on the MapperContext and never raise.
"""

from typing import Optional


class StructuralError(ValueError):
    """
    The JSON tree does not have the container shape of an MTZ record.

    Raised before any record is allocated, so a failed conversion never
    leaves a partially populated record behind.

    Attributes:
        path: Location of the offending node (e.g. "Crystals[0].Datasets")
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class TreeSyntaxError(ValueError):
    """The JSON text could not be parsed."""


class RecordIOError(OSError):
    """An MTZ file could not be read or written."""
