"""
Base mapper class and context for MTZ <-> JSON conversion.

Provides the abstract interface that all block mappers implement,
along with a shared context that carries conversion settings and
collects field-level warnings.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..constants import MISSING_TOKEN
from ..model import DEFAULT_MISSING_VALUE, Record

logger = logging.getLogger(__name__)


@dataclass
class MapperContext:
    """
    Shared context passed between mappers during conversion.

    Attributes:
        missing_token: String written to JSON for missing reflection values
        missing_value: Marker stored in new records for missing reflections
        halve_unknown_headers: Emit only the first half of the raw unknown
            header buffer. The MTZ reader returns every unknown header line
            twice; set to False for records that did not come from a file.
        warnings: Fields that were skipped during reverse mapping
    """

    missing_token: str = MISSING_TOKEN
    missing_value: float = DEFAULT_MISSING_VALUE
    halve_unknown_headers: bool = True
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, message: str) -> None:
        """Add a warning message to the context."""
        self.warnings.append(message)

    def skip_field(self, path: str, reason: str) -> None:
        """Record that a field was left at its default value."""
        logger.debug(f"Skipping {path}: {reason}")
        self.add_warning(f"{path}: {reason}, default kept")

    @property
    def has_warnings(self) -> bool:
        """Check if any warnings have been added."""
        return len(self.warnings) > 0


class Mapper(ABC):
    """
    Abstract base class for top-level document block mappers.

    Each mapper owns one key of the JSON document and converts it in
    both directions.

    Subclasses must implement:
    - block_name: The top-level JSON key (e.g. "Title", "Crystals")
    - to_tree(): Record -> JSON node
    - populate(): JSON node -> fields of an allocated Record

    Example:
        class TitleMapper(Mapper):
            block_name = "Title"

            def to_tree(self, record, context):
                return record.title

            def populate(self, record, node, context):
                if isinstance(node, str):
                    record.title = node
    """

    @property
    @abstractmethod
    def block_name(self) -> str:
        """The top-level JSON key this mapper reads and writes."""
        pass

    @abstractmethod
    def to_tree(self, record: Record, context: MapperContext) -> Any:
        """
        Map part of a record to a JSON node.

        Never fails for a well-formed record.
        """
        pass

    @abstractmethod
    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        """
        Copy values from a JSON node into an allocated record.

        Only called after the document passed structural validation.
        Fields with the wrong type or shape are skipped and reported
        through context.skip_field().

        Args:
            record: Record sized by allocate_record()
            node: Value of block_name in the document (None if absent)
            context: The shared context for reporting skipped fields
        """
        pass

    def is_required(self) -> bool:
        """
        Whether the block's key must be present in the document.

        Override in subclasses for required blocks.
        Default is False (optional block).
        """
        return False
