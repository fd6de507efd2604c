"""
recbuilder CLI - Generate command.

Splice generated builder members into a Python module: each ``@builder``
class gets its members written into its body, followed by its
``<Record>Init`` and ``<Record>Builder`` companions. The output starts
with a banner carrying a digest of the input, which ``--check`` uses to
detect stale files.
"""

from pathlib import Path

import typer

from recbuilder.cli.common import read_source, setup_logging, write_output
from recbuilder.cli.errors import ExitCode, console, print_error, print_generation_error
from recbuilder.core.builder.errors import ExtractionError
from recbuilder.core.builder.splice import compute_digest, extract_digest, splice_module
from recbuilder.core.config import load_config


def main(
    source: Path = typer.Argument(
        ...,
        help="Python module declaring @builder records",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (default: print to stdout)",
    ),
    check: bool = typer.Option(
        False,
        "--check",
        help="Exit 1 if OUTPUT is missing or was generated from a different input",
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
    Generate builder members into a Python module.

    Records that fail to generate are left exactly as written and
    reported; the command then exits with code 2.

    Examples:
        recbuilder generate models.py                     # Print to stdout
        recbuilder generate models.py -o models_gen.py    # Write a file
        recbuilder generate models.py -o models_gen.py --check
    """
    setup_logging(debug)
    config = load_config()
    options = config.to_emit_options()
    rules = config.to_rules()
    text = read_source(source)

    if check:
        if output is None:
            print_error("--check needs an output file", solution="add -o OUTPUT")
            raise typer.Exit(ExitCode.USER_ERROR)
        existing = output.read_text(encoding="utf-8") if output.exists() else ""
        if extract_digest(existing) != compute_digest(
            text, options, rules, config.decorator_names
        ):
            console.print(f"[yellow]{output} is out of date[/yellow]", highlight=False)
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        console.print(f"[green]✓[/green] {output} is up to date", highlight=False)
        return

    try:
        result = splice_module(
            text,
            source_label=source.name,
            decorator_names=config.decorator_names,
            rules=rules,
            options=options,
        )
    except ExtractionError as e:
        print_generation_error(e, path=str(source))
        raise typer.Exit(ExitCode.USER_ERROR)

    for failure in result.failures:
        print_generation_error(failure.error, path=str(source))

    if output is None:
        typer.echo(result.text, nl=False)
    else:
        write_output(output, result.text, force=force)
        console.print(
            f"[green]✓[/green] Generated {len(result.generated)} record(s) into {output}",
            highlight=False,
        )

    if not result.ok:
        raise typer.Exit(ExitCode.USER_ERROR)


if __name__ == "__main__":
    typer.run(main)
