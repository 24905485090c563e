"""Export-time validation for lens projects.

The extractor and the editing functions accept anything; this module is
the single place that enforces naming rules, uniqueness, and the
one-primary-key-per-table rule before files are rendered.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

import sqlglot
from sqlglot.errors import ParseError, TokenError

from dpgen.engine.models import LensConfig, TableDefinition

logger = logging.getLogger("dpgen.validation")

_PROJECT_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_TABLE_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

LINT_DIALECT = "trino"


@dataclass
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_project_name(name: str) -> str | None:
    """Return an error message, or None when the project name is usable."""
    if not name or not name.strip():
        return "Project name is required"
    if len(name) < 3:
        return "Project name must be at least 3 characters"
    if len(name) > 48:
        return "Project name must be 48 characters or less"
    if not _PROJECT_NAME_RE.match(name):
        return (
            "Project name must use only lowercase letters, numbers, and hyphens, "
            "and start and end with an alphanumeric character"
        )
    return None


def validate_table_name(
    name: str,
    existing: Sequence[str] = (),
    index: int | None = None,
) -> str | None:
    """Return an error message, or None. ``index`` excludes the table itself from the duplicate check."""
    if not name or not name.strip():
        return "Table name is required"
    if not _TABLE_NAME_RE.match(name):
        return "Table name must start with a letter and contain only letters, numbers, and underscores"
    others = [n for i, n in enumerate(existing) if i != index]
    if name in others:
        return f'Table "{name}" already exists. Please use a unique name.'
    return None


def validate_table(table: TableDefinition, index: int, all_names: Sequence[str] = ()) -> list[str]:
    errors: list[str] = []
    label = table.name or f"Table #{index + 1}"

    name_error = validate_table_name(table.name, all_names, index)
    if name_error:
        errors.append(f"{label}: {name_error}")

    if not table.dimensions:
        errors.append(f"{label}: At least one dimension is required")

    seen: set[str] = set()
    for i, dim in enumerate(table.dimensions):
        if not dim.name.strip():
            errors.append(f"{label} - Dimension #{i + 1}: Name is required")
            if not dim.sql.strip():
                errors.append(f"{label} - Dimension #{i + 1}: SQL expression is required")
            continue
        if dim.name in seen:
            errors.append(f'{label}: Duplicate dimension name "{dim.name}"')
        seen.add(dim.name)

    keys = [d.name or f"#{i + 1}" for i, d in enumerate(table.dimensions) if d.primary_key]
    if len(keys) > 1:
        errors.append(f"{label}: Only one primary key is allowed (found {', '.join(keys)})")

    seen = set()
    for i, measure in enumerate(table.measures):
        ref = measure.name or f"#{i + 1}"
        if not measure.name.strip():
            errors.append(f"{label} - Measure #{i + 1}: Name is required")
        else:
            if measure.name in seen:
                errors.append(f'{label}: Duplicate measure name "{measure.name}"')
            seen.add(measure.name)
        if not measure.sql.strip():
            errors.append(f'{label} - Measure "{ref}": SQL expression is required')

    for i, join in enumerate(table.joins):
        ref = join.name or f"#{i + 1}"
        if not join.name.strip():
            errors.append(f"{label} - Join #{i + 1}: Target table name is required")
        if not join.sql.strip():
            errors.append(f'{label} - Join "{ref}": Join condition is required')

    return errors


def _parses(expression: str) -> bool:
    try:
        sqlglot.parse_one(expression, read=LINT_DIALECT)
    except (ParseError, TokenError):
        return False
    return True


def lint_expressions(table: TableDefinition) -> list[str]:
    """Warn about dimension and measure expressions that do not parse as SQL."""
    warnings: list[str] = []
    label = table.name or "table"
    for dim in table.dimensions:
        expression = dim.sql or dim.name
        if expression and not _parses(expression):
            warnings.append(f'{label}: Dimension "{dim.name}" has an unparsable SQL expression: {expression}')
    for measure in table.measures:
        if measure.sql and measure.sql != "*" and not _parses(measure.sql):
            warnings.append(f'{label}: Measure "{measure.name}" has an unparsable SQL expression: {measure.sql}')
    return warnings


def validate_lens_config(config: LensConfig) -> ValidationReport:
    """Check a whole lens project before export."""
    report = ValidationReport()

    project_error = validate_project_name(config.project_name)
    if project_error:
        report.errors.append(f"Project: {project_error}")

    if not config.tables:
        report.errors.append("At least one table is required")
        return report

    names = [t.name for t in config.tables]
    for i, table in enumerate(config.tables):
        report.errors.extend(validate_table(table, i, names))
        report.warnings.extend(lint_expressions(table))

    if report.errors:
        logger.info("Lens config %r failed validation with %d error(s)", config.project_name, len(report.errors))
    return report
