"""Schema extraction from a pasted SELECT statement.

Turns ``SELECT ... FROM source.schema.table`` into a TableDefinition seed:
table identity from the FROM clause, one typed dimension per projected
column, and a default count measure.

This is deliberately a regex heuristic, not a SQL parser. It is meant to
scaffold a table definition the user then edits, so it trades completeness
for predictable failure modes. Malformed input never raises; the caller
gets an ExtractionResult with ``error`` set.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from dpgen.config import DEFAULT_SCHEMA, DEFAULT_SOURCE
from dpgen.engine.models import Dimension, Measure, TableDefinition

logger = logging.getLogger("dpgen.extract")


class ErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    MISSING_SELECT = "missing_select"
    MISSING_FROM = "missing_from"
    TABLE_NAME_NOT_FOUND = "table_name_not_found"
    NO_COLUMNS_FOUND = "no_columns_found"


@dataclass(frozen=True)
class ExtractionError:
    """A user-correctable problem with the input SQL."""

    kind: ErrorKind
    message: str
    hint: str = ""


@dataclass
class ExtractionResult:
    """Outcome of extract_schema: a table, or an error. Warnings either way."""

    table: TableDefinition | None = None
    warnings: list[str] = field(default_factory=list)
    error: ExtractionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


_ERRORS = {
    ErrorKind.EMPTY_INPUT: ("SQL query is empty", "Please enter a valid SELECT query"),
    ErrorKind.MISSING_SELECT: ("Invalid SQL query", "Query must contain a SELECT statement"),
    ErrorKind.MISSING_FROM: ("Invalid SQL query", "Query must contain a FROM clause"),
    ErrorKind.TABLE_NAME_NOT_FOUND: (
        "Could not extract table name",
        "Unable to parse table name from FROM clause. Please check your SQL syntax.",
    ),
    ErrorKind.NO_COLUMNS_FOUND: (
        "No columns found",
        "No valid columns found in SELECT clause. Please check your SQL query.",
    ),
}

CTE_WARNING = "CTE detected: query contains a WITH clause. Generated dimensions may need manual adjustment."
WINDOW_WARNING = "Window functions detected: query contains OVER (...). Please verify generated dimensions."

# --- Statement-level patterns ---

_SELECT_RE = re.compile(r"\bSELECT\b", re.IGNORECASE)
_FROM_RE = re.compile(r"\bFROM\b", re.IGNORECASE)
_WITH_RE = re.compile(r"\bWITH\b", re.IGNORECASE)
_OVER_RE = re.compile(r"\bOVER\s*\(", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_QUOTES_RE = re.compile(r"[\"'`]")

_PROJECTION_RE = re.compile(r"\bSELECT\s+(.*?)\s+FROM\b", re.IGNORECASE | re.DOTALL)
_SET_QUANTIFIER_RE = re.compile(r"^(?:DISTINCT|ALL)\s+", re.IGNORECASE)

# FROM target: the first table only, up to a JOIN / WHERE / GROUP / ORDER / LIMIT or the end.
_RESERVED = r"(?:WHERE|GROUP|ORDER|LIMIT|JOIN|LEFT|RIGHT|INNER|OUTER|CROSS|FULL|ON|UNION)"
_TABLE_ALIAS = rf"(?:\s+(?:AS\s+)?(?!{_RESERVED}\b)\w+)?"
_CLAUSE_END = (
    r"(?:\s+(?:(?:LEFT|RIGHT|INNER|OUTER|CROSS|FULL)\s+)?(?:OUTER\s+)?JOIN\b"
    r"|\s+(?:WHERE|GROUP|ORDER|LIMIT)\b"
    r"|\s*;?\s*$)"
)
_FROM_PATTERNS = (
    re.compile(rf"\bFROM\s+(\w+)\.(\w+)\.(\w+){_TABLE_ALIAS}{_CLAUSE_END}", re.IGNORECASE),
    re.compile(rf"\bFROM\s+(\w+)\.(\w+){_TABLE_ALIAS}{_CLAUSE_END}", re.IGNORECASE),
    re.compile(rf"\bFROM\s+(\w+){_TABLE_ALIAS}{_CLAUSE_END}", re.IGNORECASE),
)

# --- Column-level patterns ---

_TYPE_NAME = r"\w+(?:\s+precision)?(?:\s*\([^)]*\))?"
_CAST_RE = re.compile(
    rf"^CAST\s*\(\s*(?P<expr>.+?)\s+AS\s+(?P<type>{_TYPE_NAME})\s*\)(?:\s+(?:AS\s+)?(?P<alias>\w+))?$",
    re.IGNORECASE,
)
_PG_CAST_RE = re.compile(
    rf"^(?P<expr>.+?)::(?P<type>{_TYPE_NAME})(?:\s+(?:AS\s+)?(?P<alias>\w+))?$",
    re.IGNORECASE,
)
_ALIAS_RE = re.compile(r"^(?P<expr>.+?)\s+(?:AS\s+)?(?P<alias>\w+)$", re.IGNORECASE)
_CLEANUP_FUNC_RE = re.compile(
    r"\b(?:TRIM|UPPER|LOWER|INITCAP|LENGTH|SUBSTRING|SUBSTR|CONCAT|COALESCE|NULLIF|IFNULL|NVL|GREATEST|LEAST)"
    r"\s*\(\s*(.+?)\s*(?:,.*?)?\)",
    re.IGNORECASE,
)
_QUALIFIER_RE = re.compile(r"^\w+\.")
_NON_WORD_RE = re.compile(r"\W+")
_BARE_IDENTIFIER_RE = re.compile(r"^\w+$")

_TIME_NAME_CUES = ("date", "timestamp")
_NUMBER_NAME_CUES = ("count", "amount", "price", "capacity", "cycle", "remaining", "quantity", "total")
_NUMBER_EXPR_CUES = ("::int", "::bigint", "::numeric")


def _error(kind: ErrorKind, warnings: list[str]) -> ExtractionResult:
    message, hint = _ERRORS[kind]
    logger.debug("Schema extraction failed: %s", kind.value)
    return ExtractionResult(warnings=warnings, error=ExtractionError(kind=kind, message=message, hint=hint))


def split_projection(text: str) -> list[str]:
    """Split a projection list on commas that are not inside parentheses."""
    items: list[str] = []
    buffer: list[str] = []
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            items.append("".join(buffer).strip())
            buffer = []
        else:
            buffer.append(char)
    tail = "".join(buffer).strip()
    if tail:
        items.append(tail)
    return items


def cast_type_to_dimension(type_name: str) -> str:
    t = type_name.lower()
    if any(k in t for k in ("int", "numeric", "decimal", "float", "double")):
        return "number"
    if any(k in t for k in ("timestamp", "datetime", "date")):
        return "time"
    if "bool" in t:
        return "boolean"
    return "string"


def infer_type(name: str, expression: str) -> str:
    """Guess a dimension type from naming cues in the column name and expression."""
    lower_name = name.lower()
    lower_expr = expression.lower()

    if (
        any(cue in lower_name for cue in _TIME_NAME_CUES)
        or "time" in lower_name.split("_")
        or any(cue in lower_expr for cue in _TIME_NAME_CUES)
    ):
        return "time"
    if any(cue in lower_name for cue in _NUMBER_NAME_CUES) or any(
        cue in lower_expr for cue in _NUMBER_EXPR_CUES
    ):
        return "number"
    if (
        "is_" in lower_name
        or "has_" in lower_name
        or lower_name.endswith("_flag")
        or lower_name.startswith("flag_")
        or "::bool" in lower_expr
    ):
        return "boolean"
    return "string"


def is_primary_key(name: str, table_name: str) -> bool:
    lower_name = name.lower()
    return (
        lower_name in ("id", "uuid")
        or lower_name.endswith("_id")
        or lower_name == f"{table_name.lower()}_id"
    )


def _spaced(name: str) -> str:
    return name.replace("_", " ")


def describe_column(name: str, table_name: str, primary_key: bool) -> str:
    """Human-readable description derived from a column name."""
    lower_name = name.lower()
    if primary_key:
        return f"Unique identifier for {table_name}"
    if "name" in lower_name:
        return f"Name of the {table_name}"
    if "date" in lower_name and "update" not in lower_name:
        return f"Date when {table_name} was created or recorded"
    if "created" in lower_name:
        return f"Creation timestamp for {table_name}"
    if "updated" in lower_name or "modified" in lower_name:
        return f"Last update timestamp for {table_name}"
    if "timestamp" in lower_name:
        return f"Timestamp for {table_name} record"
    if "count" in lower_name:
        return f"Count value for {_spaced(name)}"
    if any(k in lower_name for k in ("amount", "price", "cost")):
        return f"Monetary amount for {_spaced(name)}"
    if "status" in lower_name:
        return f"Current status of {table_name}"
    if "type" in lower_name:
        return f"Type or category of {table_name}"
    if "code" in lower_name:
        return f"Code identifier for {_spaced(name)}"
    if "flag" in lower_name or lower_name.startswith(("is_", "has_")):
        subject = re.sub(r"^(is_|has_)|_flag$", "", name)
        return f"Indicates whether {_spaced(subject)}"
    if "description" in lower_name or "note" in lower_name:
        return "Detailed description or notes"
    if "email" in lower_name:
        return "Email address"
    if "phone" in lower_name or "mobile" in lower_name:
        return "Contact phone number"
    if "address" in lower_name:
        return "Physical address information"
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), _spaced(name))


def _find_table(sql: str, default_source: str, default_schema: str) -> tuple[str, str, str] | None:
    """Return (data_source, schema, table) from the first FROM target, or None."""
    unquoted = _QUOTES_RE.sub("", sql)
    three, two, one = _FROM_PATTERNS

    match = three.search(unquoted)
    if match:
        return match.group(1), match.group(2), match.group(3)
    match = two.search(unquoted)
    if match:
        return default_source, match.group(1), match.group(2)
    match = one.search(unquoted)
    if match:
        return default_source, default_schema, match.group(1)
    return None


def _parse_column(item: str) -> tuple[str, str, str]:
    """Classify one projection item into (name, sql expression, cast type)."""
    line = _QUOTES_RE.sub("", item).strip()

    match = _CAST_RE.match(line)
    if match:
        expression = match.group("expr").strip()
        name = match.group("alias") or _NON_WORD_RE.sub("_", expression)
        return name, expression, cast_type_to_dimension(match.group("type"))

    match = _PG_CAST_RE.match(line)
    if match:
        expression = match.group("expr").strip()
        name = match.group("alias") or _NON_WORD_RE.sub("_", expression)
        return name, expression, cast_type_to_dimension(match.group("type"))

    match = _ALIAS_RE.match(line)
    if match:
        alias = match.group("alias")
        if alias.lower() != "from" and "join" not in alias.lower():
            return alias, match.group("expr").strip(), "string"

    expression = line
    if _BARE_IDENTIFIER_RE.match(expression):
        return expression, expression, "string"

    base = expression
    func = _CLEANUP_FUNC_RE.search(base)
    if func:
        base = func.group(1)
    base = _QUALIFIER_RE.sub("", base)
    name = re.sub(r"[^\w]", "_", base).strip("_")
    return name, expression, "string"


def extract_schema(
    sql: str,
    default_source: str = DEFAULT_SOURCE,
    default_schema: str = DEFAULT_SCHEMA,
) -> ExtractionResult:
    """Derive a TableDefinition from a ``SELECT ... FROM ...`` statement.

    Checks run in order: empty input, missing SELECT, missing FROM. A WITH
    clause or a window function adds a warning but does not stop parsing.
    The table comes from the first FROM target that matches
    ``source.schema.table``, ``schema.table`` or ``table`` (missing parts
    default to ``default_source`` / ``default_schema``). Every projected column becomes one
    dimension; a ``total_<table>`` count measure is added on the first
    primary key (or the first column).
    """
    warnings: list[str] = []

    if not sql or not sql.strip():
        return _error(ErrorKind.EMPTY_INPUT, warnings)
    if not _SELECT_RE.search(sql):
        return _error(ErrorKind.MISSING_SELECT, warnings)
    if not _FROM_RE.search(sql):
        return _error(ErrorKind.MISSING_FROM, warnings)

    if _WITH_RE.search(sql):
        warnings.append(CTE_WARNING)
    if _OVER_RE.search(sql):
        warnings.append(WINDOW_WARNING)

    clean_sql = _WHITESPACE_RE.sub(" ", sql.strip())

    identity = _find_table(clean_sql, default_source, default_schema)
    if identity is None:
        return _error(ErrorKind.TABLE_NAME_NOT_FOUND, warnings)
    data_source, schema_name, table_name = identity

    projection = _PROJECTION_RE.search(clean_sql)
    if projection is None:
        return _error(ErrorKind.NO_COLUMNS_FOUND, warnings)
    columns_text = _SET_QUANTIFIER_RE.sub("", projection.group(1).strip())

    dimensions: list[Dimension] = []
    for item in split_projection(columns_text):
        if not item or item == "*":
            continue
        name, expression, dim_type = _parse_column(item)
        if not name:
            continue
        if dim_type == "string":
            dim_type = infer_type(name, expression)
        primary_key = is_primary_key(name, table_name)
        dimensions.append(Dimension(
            name=name,
            description=describe_column(name, table_name, primary_key),
            type=dim_type,
            sql=expression,
            primary_key=primary_key,
        ))

    if not dimensions:
        return _error(ErrorKind.NO_COLUMNS_FOUND, warnings)

    key = next((d for d in dimensions if d.primary_key), None)
    measure = Measure(
        name=f"total_{table_name}",
        description=f"Total count of {table_name} records",
        type="count",
        sql=key.name if key else dimensions[0].name,
    )

    table = TableDefinition(
        name=table_name,
        description=f"Comprehensive {table_name} data for business analytics, reporting, and operational insights",
        data_source=data_source,
        schema=schema_name,
        dimensions=dimensions,
        measures=[measure],
        joins=[],
    )
    logger.debug(
        "Extracted table %s.%s.%s with %d dimensions",
        data_source, schema_name, table_name, len(dimensions),
    )
    return ExtractionResult(table=table, warnings=warnings)
