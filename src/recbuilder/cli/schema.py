"""
recbuilder CLI - Schema command.

Generate a standalone module from a YAML or JSON sidecar schema that
lists records and their fields.
"""

from pathlib import Path

import typer

from recbuilder.cli.common import setup_logging, write_output
from recbuilder.cli.errors import ExitCode, console, print_generation_error
from recbuilder.core.builder.errors import ExtractionError
from recbuilder.core.builder.schema import generate_schema, load_schema, render_schema_module
from recbuilder.core.config import load_config


def main(
    schema_path: Path = typer.Argument(
        ...,
        metavar="SCHEMA",
        help="Schema file (.yaml, .yml or .json)",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output module (default: print to stdout)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite OUTPUT even if it was not generated by recbuilder",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Show debug output",
    ),
) -> None:
    """
    Generate a module of records from a sidecar schema.

    Records that fail to generate are reported and left out of the
    module; the command then exits with code 2.

    Examples:
        recbuilder schema records.yaml
        recbuilder schema records.yaml -o records.py
    """
    setup_logging(debug)
    config = load_config()

    try:
        schema = load_schema(schema_path)
    except ExtractionError as e:
        print_generation_error(e, path=str(schema_path))
        raise typer.Exit(ExitCode.USER_ERROR)

    rules = config.to_rules()
    result = generate_schema(schema, rules)
    for failure in result.failures:
        print_generation_error(failure.error, path=str(schema_path))

    text = render_schema_module(
        schema,
        result.plans,
        source_label=schema_path.name,
        options=config.to_emit_options(),
        rules=rules,
    )

    if output is None:
        typer.echo(text, nl=False)
    else:
        write_output(output, text, force=force)
        console.print(
            f"[green]✓[/green] Generated {len(result.plans)} record(s) into {output}",
            highlight=False,
        )

    if not result.ok:
        raise typer.Exit(ExitCode.USER_ERROR)


if __name__ == "__main__":
    typer.run(main)
