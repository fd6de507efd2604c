"""
recbuilder CLI - Inspect command.

Show how each record's fields are classified and which members would be
generated, without writing anything.
"""

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from recbuilder.cli.common import read_source, setup_logging
from recbuilder.cli.errors import ExitCode, print_error, print_generation_error
from recbuilder.core.builder.emitter import EmitOptions, record_options
from recbuilder.core.builder.errors import ExtractionError, GenerationError
from recbuilder.core.builder.extractor import extract_module
from recbuilder.core.builder.models import (
    GenerationPlan,
    InitRecordShapeSpec,
    MemberSpec,
    is_mutating,
)
from recbuilder.core.builder.pipeline import RecordFailure, generate
from recbuilder.core.config import load_config

console = Console()


def _receiver(member: MemberSpec, plan: GenerationPlan, options: EmitOptions) -> str:
    if isinstance(member, InitRecordShapeSpec):
        return plan.record.init_name
    if is_mutating(member):
        return plan.record.builder_name(options.builder_suffix)
    return plan.record.name


def _field_table(plan: GenerationPlan) -> Table:
    table = Table(title=f"{plan.record.name} fields", show_header=True, header_style="bold")
    table.add_column("Field", style="cyan")
    table.add_column("Type")
    table.add_column("Kind")
    table.add_column("Optional")
    table.add_column("Default", style="dim")
    for field in plan.fields:
        table.add_row(
            field.name,
            field.declared_type,
            field.kind.value,
            "yes" if field.is_optional else "no",
            field.default_expr or "",
        )
    return table


def _member_table(plan: GenerationPlan, options: EmitOptions) -> Table:
    table = Table(title=f"{plan.record.name} members", show_header=True, header_style="bold")
    table.add_column("Member", style="cyan")
    table.add_column("Kind")
    table.add_column("On")
    for member in plan.members:
        name = member.name
        if isinstance(member, InitRecordShapeSpec):
            name = plan.record.init_name
        table.add_row(name, member.kind, _receiver(member, plan, options))
    return table


def _plan_json(plan: GenerationPlan, options: EmitOptions) -> dict[str, Any]:
    data = plan.model_dump(mode="json")
    data["init_name"] = plan.record.init_name
    data["builder_name"] = plan.record.builder_name(options.builder_suffix)
    data["digest"] = plan.digest()
    return data


def main(
    source: Path = typer.Argument(
        ...,
        help="Python module declaring @builder records",
    ),
    record: str | None = typer.Option(
        None,
        "--record",
        "-r",
        help="Only show this record",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the generation plans as JSON",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Show debug output",
    ),
) -> None:
    """
    Show field classification and the member plan of each record.

    Examples:
        recbuilder inspect models.py
        recbuilder inspect models.py --record Request
        recbuilder inspect models.py --json
    """
    setup_logging(debug)
    config = load_config()
    rules = config.to_rules()

    try:
        extracted = extract_module(read_source(source), config.decorator_names)
    except ExtractionError as e:
        print_generation_error(e, path=str(source))
        raise typer.Exit(ExitCode.USER_ERROR)

    if record is not None:
        extracted = [item for item in extracted if item.node.name == record]
        if not extracted:
            print_error(f"No @builder record named '{record}' in {source}")
            raise typer.Exit(ExitCode.USER_ERROR)

    base = config.to_emit_options()
    plans: list[tuple[GenerationPlan, EmitOptions]] = []
    failures: list[RecordFailure] = []
    for item in extracted:
        try:
            plan = generate(item.unwrap(), rules)
            plans.append((plan, record_options(base, item.options, item.node.name)))
        except GenerationError as e:
            failures.append(RecordFailure(record=item.node.name, error=e))

    if as_json:
        payload = {
            "records": [_plan_json(plan, options) for plan, options in plans],
            "failures": [
                {"record": f.record, "error": type(f.error).__name__, "message": f.message}
                for f in failures
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        if not plans and not failures:
            console.print(f"[dim]No @builder records in {source}[/dim]")
        for plan, options in plans:
            console.print(_field_table(plan))
            console.print(_member_table(plan, options))
        for failure in failures:
            print_generation_error(failure.error, path=str(source))

    if failures:
        raise typer.Exit(ExitCode.USER_ERROR)


if __name__ == "__main__":
    typer.run(main)
