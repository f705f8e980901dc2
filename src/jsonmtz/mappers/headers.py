"""
Header line mappers: title, history and unknown headers.

History and unknown header lines are fixed 80-character records in an
MTZ file. They are right-trimmed of padding on the way out and
truncated to the record width on the way in.
"""

from typing import Any, Optional

from ..constants import MTZ_RECORD_LENGTH, TITLE_LENGTH, NodeKind
from ..model import Record
from ..shapes import is_homogeneous_string, is_kind
from .base import Mapper, MapperContext


def trim_line(line: str, width: int = MTZ_RECORD_LENGTH) -> str:
    """Cut a header line to the record width and strip trailing padding."""
    return line[:width].rstrip(" \0")


class TitleMapper(Mapper):
    """Maps the file title."""

    @property
    def block_name(self) -> str:
        return "Title"

    def is_required(self) -> bool:
        return True

    def to_tree(self, record: Record, context: MapperContext) -> str:
        return record.title

    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        if not is_kind(node, NodeKind.STRING):
            context.skip_field("Title", "expected a string")
            return
        record.title = node[:TITLE_LENGTH]


class HistoryMapper(Mapper):
    """Maps history lines, oldest first."""

    @property
    def block_name(self) -> str:
        return "History"

    def is_required(self) -> bool:
        return True

    def to_tree(self, record: Record, context: MapperContext) -> list[str]:
        return [trim_line(line) for line in record.history]

    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        if not is_homogeneous_string(node):
            context.skip_field("History", "expected an array of strings")
            return
        record.history = [line[:MTZ_RECORD_LENGTH] for line in node]


class UnknownHeadersMapper(Mapper):
    """
    Maps header records the MTZ reader did not recognise.

    The MTZ reader hands every unknown header line back twice, so only
    the first half of the raw buffer is written out. Whether this is a
    property of the file layout or of the reader is not established;
    the halving can be switched off on the MapperContext.
    """

    @property
    def block_name(self) -> str:
        return "UnknownHeaders"

    def to_tree(self, record: Record, context: MapperContext) -> list[str]:
        lines = record.unknown_headers
        count = len(lines) // 2 if context.halve_unknown_headers else len(lines)
        return [trim_line(line) for line in lines[:count]]

    def populate(self, record: Record, node: Optional[Any], context: MapperContext) -> None:
        if node is None:
            return
        if not is_homogeneous_string(node):
            context.skip_field("UnknownHeaders", "expected an array of strings")
            return
        record.unknown_headers = [line[:MTZ_RECORD_LENGTH] for line in node]
