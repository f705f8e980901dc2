"""
Command-line interface for jsonmtz.

Provides the mtz2json and json2mtz converters, both as subcommands of
the ``jsonmtz`` group and as standalone commands, plus a schema check
for JSON documents.
"""

import json
import sys
from pathlib import Path

import click
import jsonschema

from . import __version__
from .constants import ConversionStatus
from .converter import ConversionResult, JsonMtzConverter
from .errors import StructuralError
from .reverse import measure_tree


def _check_paths(file_in: Path, file_out: Path, force: bool) -> None:
    """Refuse to overwrite the input file unless forced."""
    if force:
        return
    if file_in.resolve() == file_out.resolve():
        click.echo(
            click.style("Input and output filenames must be different.", fg="red"), err=True
        )
        sys.exit(1)


def _report(result: ConversionResult, unreadable: str, failed: str) -> None:
    """Print the outcome of a conversion and exit with its status."""
    for warning in result.warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)

    if result.success:
        click.echo(str(result.output_path))
        return

    message = unreadable if result.status is ConversionStatus.INPUT_UNREADABLE else failed
    click.echo(click.style(message, fg="red"), err=True)
    for error in result.errors:
        click.echo(f"  - {error}", err=True)
    sys.exit(result.exit_code)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """
    MTZ <-> JSON converter.

    Convert MTZ reflection files to JSON documents and back.
    """
    pass


@main.command()
@click.argument("file_in", metavar="IN.MTZ", type=click.Path(path_type=Path))
@click.argument("file_out", metavar="OUT.JSON", type=click.Path(path_type=Path))
@click.option("-c", "--compact", is_flag=True, help="Write compact JSON file.")
@click.option("-n", "--no-timestamp", is_flag=True, help="Do not add timestamp to history.")
@click.option("-f", "--force", is_flag=True, help="Input and output filenames can be the same.")
@click.version_option(version=__version__, prog_name="mtz2json")
def mtz2json(file_in: Path, file_out: Path, compact: bool, no_timestamp: bool, force: bool) -> None:
    """Convert an MTZ reflection file to JSON.

    Example:

        mtz2json in.mtz out.json
    """
    _check_paths(file_in, file_out, force)

    converter = JsonMtzConverter(add_provenance=not no_timestamp, compact=compact)
    result = converter.mtz_to_json(file_in, file_out)

    _report(result, unreadable="No such file.", failed="Failed.")


@main.command()
@click.argument("file_in", metavar="IN.JSON", type=click.Path(path_type=Path))
@click.argument("file_out", metavar="OUT.MTZ", type=click.Path(path_type=Path))
@click.option("-n", "--no-timestamp", is_flag=True, help="Do not add timestamp to history.")
@click.option("-f", "--force", is_flag=True, help="Input and output filenames can be the same.")
@click.version_option(version=__version__, prog_name="json2mtz")
def json2mtz(file_in: Path, file_out: Path, no_timestamp: bool, force: bool) -> None:
    """Convert a JSON reflection file to MTZ.

    Example:

        json2mtz in.json out.mtz
    """
    _check_paths(file_in, file_out, force)

    converter = JsonMtzConverter(add_provenance=not no_timestamp)
    result = converter.json_to_mtz(file_in, file_out)

    _report(
        result,
        unreadable="Unable to read JSON file.",
        failed="Unable to convert to MTZ file / write MTZ file.",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
def validate(file: Path) -> None:
    """Validate a JSON reflection file against the schema."""
    schema_path = Path(__file__).parent / "schema" / "jsonmtz_v1.json"
    if not schema_path.exists():
        click.echo("Schema file not found", err=True)
        sys.exit(1)

    with open(schema_path) as f:
        schema = json.load(f)

    try:
        with open(file) as f:
            document = json.load(f)
    except ValueError as e:
        click.echo(f"✗ Invalid JSON: {e}", err=True)
        sys.exit(1)

    try:
        jsonschema.validate(document, schema)
        layout = measure_tree(document)
    except jsonschema.ValidationError as e:
        click.echo(f"✗ Validation failed: {e.message}", err=True)
        sys.exit(1)
    except StructuralError as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(
        f"✓ Valid jsonmtz document: {file} "
        f"({layout.ncrystals} crystal(s), {layout.ncolumns} column(s), "
        f"{layout.nref} reflection(s))"
    )


if __name__ == "__main__":
    main()
