"""Pure update functions for a LensConfig.

Every function takes a config and returns a new one; the input is never
mutated. Items are addressed by position, the way the editor lists them.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from dpgen.config import DEFAULT_SCHEMA
from dpgen.engine.extract import ExtractionResult
from dpgen.engine.models import Dimension, Join, LensConfig, Measure, TableDefinition

_Item = TypeVar("_Item", bound=BaseModel)

# Which TableDefinition list each item type lives in.
_COLLECTIONS: dict[type[BaseModel], str] = {
    Dimension: "dimensions",
    Measure: "measures",
    Join: "joins",
}


class EditError(ValueError):
    """Raised for an out-of-range index or an invalid field value."""


def _check_index(items: list, index: int, label: str) -> None:
    if not 0 <= index < len(items):
        raise EditError(f"{label} index {index} out of range (have {len(items)})")


def _patched(model: _Item, fields: dict[str, Any]) -> _Item:
    """Return a validated copy of ``model`` with ``fields`` replaced."""
    unknown = set(fields) - set(type(model).model_fields)
    if unknown:
        raise EditError(f"Unknown field(s) for {type(model).__name__}: {', '.join(sorted(unknown))}")
    try:
        return type(model).model_validate({**model.model_dump(), **fields})
    except ValidationError as e:
        raise EditError(str(e)) from e


def _replace_table(config: LensConfig, index: int, table: TableDefinition) -> LensConfig:
    tables = [table if i == index else t for i, t in enumerate(config.tables)]
    return config.model_copy(update={"tables": tables})


def _table_at(config: LensConfig, index: int) -> TableDefinition:
    _check_index(config.tables, index, "Table")
    return config.tables[index]


# --- Tables ---


def add_table(config: LensConfig, table: TableDefinition | None = None) -> LensConfig:
    """Append ``table``, or a blank table using the config's source."""
    if table is None:
        table = TableDefinition(data_source=config.source, schema=DEFAULT_SCHEMA)
    return config.model_copy(update={"tables": [*config.tables, table]})


def add_extracted_table(config: LensConfig, result: ExtractionResult) -> LensConfig:
    """Append the table from a successful extraction and adopt its data source."""
    if not result.ok or result.table is None:
        message = result.error.message if result.error else "no table extracted"
        raise EditError(f"Cannot add table from failed extraction: {message}")
    updated = add_table(config, result.table)
    return updated.model_copy(update={"source": result.table.data_source})


def update_table(config: LensConfig, index: int, **fields: Any) -> LensConfig:
    """Replace top-level table fields (name, description, data_source, schema)."""
    table = _table_at(config, index)
    if "schema" in fields:
        fields["schema_name"] = fields.pop("schema")
    return _replace_table(config, index, _patched(table, fields))


def delete_table(config: LensConfig, index: int) -> LensConfig:
    _table_at(config, index)
    tables = [t for i, t in enumerate(config.tables) if i != index]
    return config.model_copy(update={"tables": tables})


# --- Dimensions, measures, joins ---


def _add_item(config: LensConfig, table_index: int, item: BaseModel) -> LensConfig:
    table = _table_at(config, table_index)
    attr = _COLLECTIONS[type(item)]
    items = [*getattr(table, attr), item]
    return _replace_table(config, table_index, table.model_copy(update={attr: items}))


def _update_item(
    config: LensConfig, table_index: int, item_type: type[BaseModel], item_index: int, fields: dict[str, Any],
) -> LensConfig:
    table = _table_at(config, table_index)
    attr = _COLLECTIONS[item_type]
    items = list(getattr(table, attr))
    _check_index(items, item_index, item_type.__name__)
    items[item_index] = _patched(items[item_index], fields)
    return _replace_table(config, table_index, table.model_copy(update={attr: items}))


def _delete_item(config: LensConfig, table_index: int, item_type: type[BaseModel], item_index: int) -> LensConfig:
    table = _table_at(config, table_index)
    attr = _COLLECTIONS[item_type]
    items = list(getattr(table, attr))
    _check_index(items, item_index, item_type.__name__)
    del items[item_index]
    return _replace_table(config, table_index, table.model_copy(update={attr: items}))


def add_dimension(config: LensConfig, table_index: int, dimension: Dimension | None = None) -> LensConfig:
    return _add_item(config, table_index, dimension or Dimension())


def update_dimension(config: LensConfig, table_index: int, dim_index: int, **fields: Any) -> LensConfig:
    return _update_item(config, table_index, Dimension, dim_index, fields)


def delete_dimension(config: LensConfig, table_index: int, dim_index: int) -> LensConfig:
    return _delete_item(config, table_index, Dimension, dim_index)


def add_measure(config: LensConfig, table_index: int, measure: Measure | None = None) -> LensConfig:
    return _add_item(config, table_index, measure or Measure())


def update_measure(config: LensConfig, table_index: int, measure_index: int, **fields: Any) -> LensConfig:
    return _update_item(config, table_index, Measure, measure_index, fields)


def delete_measure(config: LensConfig, table_index: int, measure_index: int) -> LensConfig:
    return _delete_item(config, table_index, Measure, measure_index)


def add_join(config: LensConfig, table_index: int, join: Join | None = None) -> LensConfig:
    return _add_item(config, table_index, join or Join())


def update_join(config: LensConfig, table_index: int, join_index: int, **fields: Any) -> LensConfig:
    return _update_item(config, table_index, Join, join_index, fields)


def delete_join(config: LensConfig, table_index: int, join_index: int) -> LensConfig:
    return _delete_item(config, table_index, Join, join_index)
