"""Semantic model types: tables, dimensions, measures, joins."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dpgen.config import DEFAULT_SCHEMA, DEFAULT_SOURCE

DimensionType = Literal["string", "number", "time", "boolean"]
MeasureType = Literal["count", "count_distinct", "sum", "avg", "min", "max"]
Relationship = Literal["one_to_one", "one_to_many", "many_to_one", "many_to_many"]

DIMENSION_TYPES: tuple[str, ...] = ("string", "number", "time", "boolean")
MEASURE_TYPES: tuple[str, ...] = ("count", "count_distinct", "sum", "avg", "min", "max")
RELATIONSHIPS: tuple[str, ...] = ("one_to_one", "one_to_many", "many_to_one", "many_to_many")


class Dimension(BaseModel):
    """A non-aggregated, typed column exposed for filtering and grouping."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    description: str = ""
    type: DimensionType = "string"
    sql: str = ""
    primary_key: bool = False


class Measure(BaseModel):
    """An aggregated metric."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    description: str = ""
    type: MeasureType = "count"
    sql: str = ""


class Join(BaseModel):
    """A relationship to another table; ``sql`` is the join condition."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    relationship: Relationship = "many_to_one"
    sql: str = ""


class TableDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str = ""
    description: str = ""
    data_source: str = DEFAULT_SOURCE
    schema_name: str = Field(default=DEFAULT_SCHEMA, alias="schema")
    dimensions: list[Dimension] = Field(default_factory=list)
    measures: list[Measure] = Field(default_factory=list)
    joins: list[Join] = Field(default_factory=list)

    @property
    def schema(self) -> str:
        return self.schema_name


class LensConfig(BaseModel):
    """A lens project: a name, a default source, and its tables."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    project_name: str = ""
    source: str = DEFAULT_SOURCE
    tables: list[TableDefinition] = Field(default_factory=list)
