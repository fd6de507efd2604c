"""
Source splicing.

Rewrites a module so that every ``@builder`` record carries its
generated members statically: the decorator is removed, the members are
appended to the class body, and ``<Record>Init`` / ``<Record>Builder``
follow the class. The output starts with a banner holding a digest of
the input so stale outputs can be detected.
"""

import ast
import hashlib
import logging
import re
from dataclasses import dataclass, field

from recbuilder import __version__
from recbuilder.core.builder.emitter import (
    EmitOptions,
    record_options,
    render_companions,
    render_record_members,
)
from recbuilder.core.builder.errors import GenerationError
from recbuilder.core.builder.extractor import DEFAULT_DECORATORS, extract_module
from recbuilder.core.builder.pipeline import RecordFailure, generate
from recbuilder.core.builder.types import DEFAULT_RULES, TypeRules

logger = logging.getLogger(__name__)

BANNER = "# Generated by recbuilder {version} from {source}. Do not edit."
DIGEST_PATTERN = re.compile(r"^# digest: ([0-9a-f]{64})$", re.MULTILINE)


@dataclass
class SpliceResult:
    """Rendered module text plus per-record outcome."""

    text: str
    generated: list[str] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def compute_digest(
    source: str,
    options: EmitOptions,
    rules: TypeRules = DEFAULT_RULES,
    decorator_names: tuple[str, ...] = DEFAULT_DECORATORS,
) -> str:
    """Digest over generator version, emit options, type rules, decorator names and input."""
    h = hashlib.sha256()
    for part in (
        __version__,
        options.model_dump_json(),
        rules.model_dump_json(),
        ",".join(decorator_names),
        source,
    ):
        h.update(part.encode("utf-8"))
        h.update(b"\x00")
    return h.hexdigest()


def extract_digest(text: str) -> str | None:
    """Digest recorded in a generated file's banner, if any."""
    match = DIGEST_PATTERN.search(text)
    return match.group(1) if match else None


def banner_lines(source_label: str, digest: str) -> list[str]:
    return [BANNER.format(version=__version__, source=source_label), f"# digest: {digest}"]


def _prefixed(lines: list[str], prefix: str) -> list[str]:
    return [prefix + line if line else "" for line in lines]


def _needs_copy_import(tree: ast.Module) -> bool:
    for stmt in tree.body:
        if isinstance(stmt, ast.Import) and any(
            alias.name == "copy" and alias.asname is None for alias in stmt.names
        ):
            return False
    return True


def _import_position(tree: ast.Module) -> int:
    """Line index after the module docstring and ``__future__`` imports."""
    position = 0
    for i, stmt in enumerate(tree.body):
        is_docstring = (
            i == 0
            and isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Constant)
            and isinstance(stmt.value.value, str)
        )
        is_future = isinstance(stmt, ast.ImportFrom) and stmt.module == "__future__"
        if not (is_docstring or is_future):
            break
        position = stmt.end_lineno or stmt.lineno
    return position


def splice_module(
    source: str,
    *,
    source_label: str = "<string>",
    decorator_names: tuple[str, ...] = DEFAULT_DECORATORS,
    rules: TypeRules = DEFAULT_RULES,
    options: EmitOptions | None = None,
) -> SpliceResult:
    """Render the module with generated members spliced into every record.

    Records that fail are left exactly as written (decorator included) and
    reported in ``failures``; the rest are generated.

    Raises:
        ExtractionError: If the module does not parse
    """
    options = options or EmitOptions()
    extracted = extract_module(source, decorator_names)
    tree = ast.parse(source)
    lines = source.splitlines()
    # (start, end, replacement) over 0-based line indices, end exclusive
    edits: list[tuple[int, int, list[str]]] = []
    result = SpliceResult(text="")

    for item in extracted:
        node = item.node
        name = node.name
        try:
            plan = generate(item.unwrap(), rules)
            emit = record_options(options, item.options, name)
        except GenerationError as e:
            result.failures.append(RecordFailure(record=name, error=e))
            continue

        decorator = item.decorator
        edits.append((decorator.lineno - 1, decorator.end_lineno or decorator.lineno, []))

        end = node.end_lineno or node.lineno
        body_prefix = " " * node.body[0].col_offset
        class_prefix = " " * node.col_offset
        insertion = [""] + _prefixed(render_record_members(plan, emit), body_prefix)
        insertion += ["", ""] + _prefixed(render_companions(plan, emit), class_prefix)
        edits.append((end, end, insertion))
        result.generated.append(name)
        logger.debug("spliced %s (%d members)", name, len(plan.members))

    if result.generated and _needs_copy_import(tree):
        position = _import_position(tree)
        if position == 0 and lines and lines[0].startswith("#!"):
            position = 1
        block = ["import copy", ""] if position == 0 else ["", "import copy"]
        edits.append((position, position, block))

    for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        lines[start:end] = replacement

    header: list[str] = []
    if lines and lines[0].startswith("#!"):
        header.append(lines.pop(0))
    header += banner_lines(source_label, compute_digest(source, options, rules, decorator_names))

    result.text = "\n".join(header + lines).rstrip("\n") + "\n"
    return result
