"""
Generation pipeline: classify, then synthesize.

Each record is processed on its own and yields either a complete
GenerationPlan or an error; a failing record never affects the others.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from recbuilder.core.builder.classifier import classify_fields
from recbuilder.core.builder.errors import GenerationError
from recbuilder.core.builder.models import GenerationPlan, RecordDeclaration
from recbuilder.core.builder.synthesizer import synthesize
from recbuilder.core.builder.types import DEFAULT_RULES, TypeRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordFailure:
    """A record whose generation was aborted."""

    record: str
    error: GenerationError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class BatchResult:
    """Outcome of generating several records independently."""

    plans: list[GenerationPlan] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def generate(record: RecordDeclaration, rules: TypeRules = DEFAULT_RULES) -> GenerationPlan:
    """Run the full pipeline for one record.

    Raises:
        GenerationError: Any classification or collision error, attributed
            to the record and the offending field
    """
    logger.debug("generating builder for %s (%d fields)", record.name, len(record.fields))
    fields = classify_fields(record, rules)
    try:
        members = synthesize(fields, record.declared_members, record.type_params)
    except GenerationError as e:
        raise e.attribute(record.name)
    return GenerationPlan(record=record, fields=fields, members=members)


def generate_all(
    records: Iterable[RecordDeclaration], rules: TypeRules = DEFAULT_RULES
) -> BatchResult:
    """Generate every record, collecting failures instead of stopping at the first."""
    result = BatchResult()
    for record in records:
        try:
            result.plans.append(generate(record, rules))
        except GenerationError as e:
            logger.debug("generation failed for %s: %s", record.name, e)
            result.failures.append(RecordFailure(record=record.name, error=e))
    return result
