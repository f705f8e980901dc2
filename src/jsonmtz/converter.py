"""
MTZ <-> JSON Converter - orchestration of both conversion directions.

This module provides the JsonMtzConverter class which chains the MTZ
reader/writer, the record <-> tree mappers and JSON (de)serialization,
and reports the outcome of file conversions as a ConversionResult.
"""

import dataclasses
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union

import jsonschema

from .constants import DEFAULT_INDENT, MISSING_TOKEN, ConversionStatus
from .errors import RecordIOError, StructuralError, TreeSyntaxError
from .forward import record_to_tree
from .mappers import MapperContext
from .model import DEFAULT_MISSING_VALUE, Record
from .mtzio import dropped_blocks, read_record, write_record
from .provenance import job_string, make_timestamp, stamp_record
from .reverse import tree_to_record

logger = logging.getLogger(__name__)

# Tool names recorded in provenance history lines
EXPORT_TOOL = "mtz2json"
IMPORT_TOOL = "json2mtz"

PathLike = Union[str, Path]

# Type aliases for injected collaborators
ClockFunc = Callable[[], datetime]
RecordReader = Callable[[PathLike], Record]
RecordWriter = Callable[[Record, PathLike], None]


class ConversionResult:
    """
    Result of converting a file.

    Attributes:
        status: SUCCESS, INPUT_UNREADABLE or CONVERSION_FAILED
        output_path: The file written (None unless successful)
        warnings: Non-fatal issues (fields skipped while reading JSON)
        errors: Fatal issues encountered
    """

    def __init__(
        self,
        status: ConversionStatus,
        output_path: Optional[Path] = None,
        warnings: Optional[list[str]] = None,
        errors: Optional[list[str]] = None,
    ):
        self.status = status
        self.output_path = output_path
        self.warnings = warnings or []
        self.errors = errors or []

    @property
    def success(self) -> bool:
        """Check if the output file was written."""
        return self.status is ConversionStatus.SUCCESS

    @property
    def has_warnings(self) -> bool:
        """Check if conversion produced warnings."""
        return len(self.warnings) > 0

    @property
    def has_errors(self) -> bool:
        """Check if conversion produced errors."""
        return len(self.errors) > 0

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome."""
        return 0 if self.success else 1


class JsonMtzConverter:
    """
    Converts MTZ files to JSON documents and back.

    Example:
        from jsonmtz import JsonMtzConverter

        converter = JsonMtzConverter()
        result = converter.mtz_to_json("in.mtz", "out.json")

        if result.success:
            print(result.output_path)
        else:
            print("Errors:", result.errors)

    Attributes:
        add_provenance: Whether to append a history line to each record
        compact: Whether to write JSON without indentation
        validate_output: Whether to check exported trees against the JSON schema
    """

    def __init__(
        self,
        add_provenance: bool = True,
        compact: bool = False,
        indent: int = DEFAULT_INDENT,
        missing_token: str = MISSING_TOKEN,
        missing_value: float = DEFAULT_MISSING_VALUE,
        halve_unknown_headers: bool = True,
        validate_output: bool = False,
        schema_path: Optional[PathLike] = None,
        clock: Optional[ClockFunc] = None,
        reader: Optional[RecordReader] = None,
        writer: Optional[RecordWriter] = None,
    ):
        """
        Initialize the converter.

        Args:
            add_provenance: Append a "<tool> vX.Y.Z run on <date>" history line
            compact: Write compact JSON instead of indenting
            indent: Indentation of non-compact JSON
            missing_token: JSON token for missing reflection values
            missing_value: Missing-value marker of records built from JSON
            halve_unknown_headers: Compensate for the MTZ reader returning
                                   unknown header lines twice
            validate_output: Validate exported trees against the JSON schema
            schema_path: Optional path to the JSON schema file
            clock: Optional function returning current datetime (for testing)
            reader: Optional MTZ reader (defaults to mtzio.read_record)
            writer: Optional MTZ writer (defaults to mtzio.write_record)
        """
        self.add_provenance = add_provenance
        self.compact = compact
        self.indent = indent
        self.missing_token = missing_token
        self.missing_value = missing_value
        self.halve_unknown_headers = halve_unknown_headers
        self.validate_output = validate_output
        self._schema: Optional[dict] = None
        self._schema_path = Path(schema_path) if schema_path else None
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._reader = reader or read_record
        self._writer = writer or write_record

    def new_context(self) -> MapperContext:
        """Create a MapperContext carrying this converter's settings."""
        return MapperContext(
            missing_token=self.missing_token,
            missing_value=self.missing_value,
            halve_unknown_headers=self.halve_unknown_headers,
        )

    # -------------------------------------------------------------------------
    # In-memory conversion
    # -------------------------------------------------------------------------

    def export_to_tree(
        self,
        record: Record,
        add_provenance: Optional[bool] = None,
        context: Optional[MapperContext] = None,
    ) -> dict[str, Any]:
        """
        Convert a Record to a JSON document tree.

        The provenance line is added to the output only; the caller's
        record is left unchanged.
        """
        if add_provenance is None:
            add_provenance = self.add_provenance

        if add_provenance:
            stamp = make_timestamp(job_string(EXPORT_TOOL), self._clock())
            record = dataclasses.replace(record, history=record.history + [stamp])

        return record_to_tree(record, context or self.new_context())

    def import_from_tree(
        self,
        tree: Any,
        add_provenance: Optional[bool] = None,
        context: Optional[MapperContext] = None,
    ) -> Record:
        """
        Convert a JSON document tree to a new Record.

        Raises:
            StructuralError: If the tree does not describe an MTZ record
        """
        if add_provenance is None:
            add_provenance = self.add_provenance

        record = tree_to_record(tree, context or self.new_context())

        if add_provenance:
            stamp_record(record, IMPORT_TOOL, self._clock())
        return record

    def parse(self, text: Union[str, bytes]) -> Any:
        """
        Parse JSON text.

        Raises:
            TreeSyntaxError: If the text is not valid JSON
        """
        try:
            return json.loads(text)
        except ValueError as e:
            raise TreeSyntaxError(f"Invalid JSON: {e}") from e

    def serialize(self, tree: Any) -> str:
        """Serialize a tree, compact or indented per configuration."""
        if self.compact:
            return json.dumps(tree, separators=(",", ":"))
        return json.dumps(tree, indent=self.indent)

    # -------------------------------------------------------------------------
    # File conversion
    # -------------------------------------------------------------------------

    def mtz_to_json(self, file_in: PathLike, file_out: PathLike) -> ConversionResult:
        """
        Convert an MTZ file to a JSON file.

        Returns:
            ConversionResult; INPUT_UNREADABLE if the MTZ file cannot be
            read, CONVERSION_FAILED if the JSON cannot be written
        """
        file_out = Path(file_out)
        context = self.new_context()

        try:
            record = self._reader(file_in)
        except RecordIOError as e:
            logger.warning(f"Cannot read {file_in}: {e}")
            return ConversionResult(ConversionStatus.INPUT_UNREADABLE, errors=[str(e)])

        tree = self.export_to_tree(record, context=context)

        if self.validate_output:
            schema_errors = self.validate_tree(tree)
            if schema_errors:
                return ConversionResult(
                    ConversionStatus.CONVERSION_FAILED,
                    warnings=context.warnings,
                    errors=schema_errors,
                )

        try:
            file_out.parent.mkdir(parents=True, exist_ok=True)
            file_out.write_text(self.serialize(tree))
        except OSError as e:
            logger.warning(f"Cannot write {file_out}: {e}")
            return ConversionResult(
                ConversionStatus.CONVERSION_FAILED, warnings=context.warnings, errors=[str(e)]
            )

        logger.info(f"Wrote JSON to {file_out}")
        return ConversionResult(
            ConversionStatus.SUCCESS, output_path=file_out, warnings=context.warnings
        )

    def json_to_mtz(self, file_in: PathLike, file_out: PathLike) -> ConversionResult:
        """
        Convert a JSON file to an MTZ file.

        Returns:
            ConversionResult; INPUT_UNREADABLE if the JSON file cannot be
            read, CONVERSION_FAILED if it is not valid JSON, does not
            describe an MTZ record, or the MTZ file cannot be written
        """
        file_in, file_out = Path(file_in), Path(file_out)
        context = self.new_context()

        try:
            text = file_in.read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read {file_in}: {e}")
            return ConversionResult(ConversionStatus.INPUT_UNREADABLE, errors=[str(e)])

        try:
            tree = self.parse(text)
            record = self.import_from_tree(tree, context=context)
        except (TreeSyntaxError, StructuralError) as e:
            logger.warning(f"Cannot convert {file_in}: {e}")
            return ConversionResult(
                ConversionStatus.CONVERSION_FAILED, warnings=context.warnings, errors=[str(e)]
            )

        if context.has_warnings:
            logger.info(f"{len(context.warnings)} field(s) of {file_in} kept their defaults")

        try:
            self._writer(record, file_out)
        except RecordIOError as e:
            logger.warning(f"Cannot write {file_out}: {e}")
            return ConversionResult(
                ConversionStatus.CONVERSION_FAILED, warnings=context.warnings, errors=[str(e)]
            )

        for note in dropped_blocks(record):
            context.add_warning(note)

        logger.info(f"Wrote MTZ to {file_out}")
        return ConversionResult(
            ConversionStatus.SUCCESS, output_path=file_out, warnings=context.warnings
        )

    # -------------------------------------------------------------------------
    # Schema validation
    # -------------------------------------------------------------------------

    def validate_tree(self, tree: Any) -> list[str]:
        """
        Validate a tree against the JSON schema.

        Returns list of validation errors (empty if valid).
        """
        schema = self._load_schema()
        if schema is None:
            return []

        validator = jsonschema.Draft7Validator(schema)
        errors = []
        for error in validator.iter_errors(tree):
            path = ".".join(str(p) for p in error.absolute_path)
            errors.append(f"{path}: {error.message}" if path else error.message)

        return errors

    def _load_schema(self) -> Optional[dict]:
        """
        Load the JSON schema.

        Search order:
        1. Explicitly configured schema_path
        2. Environment variable JSONMTZ_SCHEMA_PATH
        3. Bundled schema in package
        """
        if self._schema is not None:
            return self._schema

        # 1. User-provided schema path
        if self._schema_path and self._schema_path.exists():
            return self._load_schema_from_path(self._schema_path)

        # 2. Environment variable
        env_path = os.environ.get("JSONMTZ_SCHEMA_PATH")
        if env_path:
            env_path_obj = Path(env_path)
            if env_path_obj.exists():
                return self._load_schema_from_path(env_path_obj)

        # 3. Bundled schema in package
        bundled_path = Path(__file__).parent / "schema" / "jsonmtz_v1.json"
        if bundled_path.exists():
            return self._load_schema_from_path(bundled_path)

        logger.warning(
            "Could not find the jsonmtz JSON schema. Pass schema_path to "
            "JsonMtzConverter or set JSONMTZ_SCHEMA_PATH environment variable."
        )
        return None

    def _load_schema_from_path(self, path: Path) -> Optional[dict]:
        """Load schema from a specific path."""
        try:
            with open(path) as f:
                self._schema = json.load(f)
            logger.info(f"Loaded JSON schema from {path}")
            return self._schema
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load schema from {path}: {e}")
            return None
