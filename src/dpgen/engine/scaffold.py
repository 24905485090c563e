"""Data product project scaffolding.

A ``ProjectSpec`` describes the infrastructure (depots, scanners, cluster),
the source entities, and one consumption layer. It expands into one
source-aligned data product per entity, one consumer-aligned data product
for the consumption layer, and the shared ``infra/`` manifests.
"""

from __future__ import annotations

import logging
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dpgen.config import Settings
from dpgen.engine.archive import GeneratedFile
from dpgen.engine.lens import render_deployment_yaml, render_table_sql, render_table_yaml, render_user_groups_yaml
from dpgen.engine.models import Dimension, Measure, TableDefinition
from dpgen.templates import (
    ACCESS_CONTROL_TEMPLATE,
    ACTIVATION_LAYERS,
    ACTIVATION_README_TEMPLATE,
    BUNDLE_TEMPLATE,
    CLUSTER_DEPOT_TEMPLATE,
    CLUSTER_TEMPLATE,
    CONSUMER_DATA_PRODUCT_TEMPLATE,
    CONSUMER_INPUT_TEMPLATE,
    CONSUMER_SCANNER_TEMPLATE,
    DEPOT_SCANNER_TEMPLATE,
    DEPOT_TEMPLATE,
    FLARE_INPUTS,
    FLARE_WORKFLOW_TEMPLATE,
    INSTANCE_SECRET_TEMPLATE,
    PIPELINE_TEMPLATE,
    QUALITY_FAILED_MONITOR_TEMPLATE,
    QUALITY_WORKFLOW_TEMPLATE,
    SOURCE_DATA_PRODUCT_TEMPLATE,
    SOURCE_SCANNER_TEMPLATE,
    WORKFLOW_FAILED_MONITOR_TEMPLATE,
    WORKFLOW_FAILED_PAGER_TEMPLATE,
)

logger = logging.getLogger("dpgen.scaffold")

SourceType = Literal["snowflake", "postgres", "s3", "bigquery", "other"]
SOURCE_TYPES: tuple[str, ...] = ("snowflake", "postgres", "s3", "bigquery", "other")
DEFAULT_SOURCE_TYPE = "bigquery"

_ENTITY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class ProjectSpecError(ValueError):
    """Raised when a project spec cannot be scaffolded."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Project spec is invalid:\n" + "\n".join(self.errors))


class Depot(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str = ""
    type: str = ""


class Scanner(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str = ""
    depot: str = ""
    include_pattern: str = ""


class SourceEntity(BaseModel):
    """A source entity; an empty ``source_type`` inherits the first depot's type."""
    model_config = ConfigDict(extra="ignore")
    entity: str = ""
    source_type: str = ""


class ProjectSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project_name: str = ""
    cluster_name: str = ""
    owner: str = "data-product-owner"
    depots: list[Depot] = Field(default_factory=list)
    scanners: list[Scanner] = Field(default_factory=list)
    sources: list[SourceEntity] = Field(default_factory=list)
    consumption_layer: str = ""
    semantic_entities: list[str] = Field(default_factory=list)

    @property
    def entities(self) -> list[str]:
        """Non-blank source entity names, trimmed."""
        return [s.entity.strip() for s in self.sources if s.entity.strip()]

    @property
    def modeled_entities(self) -> list[str]:
        custom = [e.strip() for e in self.semantic_entities if e.strip()]
        return custom or self.entities


class DataProduct(BaseModel):
    """One data product to render: source-aligned per entity, or the consumer layer."""
    model_config = ConfigDict(extra="ignore")

    name: str
    entity: str
    type: Literal["source", "consumer"] = "source"
    source_type: SourceType = "other"
    entities: list[str] = Field(default_factory=list)
    semantic_entities: list[str] = Field(default_factory=list)
    depot: str = ""
    cluster: str = "system"
    owner: str = "data-product-owner"


def normalize_source_type(value: str | None) -> str:
    """Map free-form source types onto the supported set; anything else is ``other``."""
    normalized = (value or "").strip().lower()
    return normalized if normalized in SOURCE_TYPES else "other"


def _name_error(label: str, name: str) -> str | None:
    if not _ENTITY_RE.match(name):
        return f'{label} "{name}" may only contain letters, numbers, hyphens, and underscores'
    return None


def _check_names(label: str, names: list[str], errors: list[str]) -> set[str]:
    """Append character and duplicate errors for ``names``; return the distinct names."""
    seen: set[str] = set()
    for name in names:
        error = _name_error(label, name)
        if error:
            errors.append(error)
        if name in seen:
            errors.append(f'Duplicate {label.lower()} "{name}"')
        seen.add(name)
    return seen


def validate_project_spec(spec: ProjectSpec) -> list[str]:
    errors: list[str] = []

    if not spec.project_name.strip():
        errors.append("Project name is required")

    cluster = spec.cluster_name.strip()
    if not cluster:
        errors.append("Cluster name is required")
    else:
        error = _name_error("Cluster", cluster)
        if error:
            errors.append(error)

    if not spec.depots:
        errors.append("At least one depot is required")
    for i, depot in enumerate(spec.depots):
        if not depot.name.strip() or not depot.type.strip():
            errors.append(f"Depot #{i + 1}: name and type are required")
    depot_names = _check_names("Depot", [d.name.strip() for d in spec.depots if d.name.strip()], errors)

    if not spec.scanners:
        errors.append("At least one scanner is required")
    for i, scanner in enumerate(spec.scanners):
        if not scanner.name.strip() or not scanner.depot.strip():
            errors.append(f"Scanner #{i + 1}: name and depot are required")
        elif scanner.depot.strip() not in depot_names:
            errors.append(f'Scanner "{scanner.name}" references unknown depot "{scanner.depot}"')
    _check_names("Scanner", [s.name.strip() for s in spec.scanners if s.name.strip()], errors)

    entities = spec.entities
    if not entities:
        errors.append("At least one source entity is required")
    seen = _check_names("Entity", entities, errors)

    layer = spec.consumption_layer.strip()
    if not layer:
        errors.append("Consumption layer name is required")
    elif not _ENTITY_RE.match(layer):
        errors.append("Consumption layer may only contain letters, numbers, hyphens, and underscores")
    elif layer in seen:
        errors.append(f'Consumption layer "{layer}" collides with a source entity of the same name')

    _check_names("Semantic entity", [e.strip() for e in spec.semantic_entities if e.strip()], errors)

    return errors


# --- Source-aligned ---


def _flare_inputs(product: DataProduct) -> str:
    template = FLARE_INPUTS[normalize_source_type(product.source_type)]
    return template.format(entity=product.entity, depot=product.depot or product.source_type)


def _observability_files(product: DataProduct, alignment: str) -> list[GeneratedFile]:
    base = f"{product.entity}/observability"
    values = dict(
        entity=product.entity, alignment=alignment, cluster=product.cluster,
        title=alignment.capitalize(),
    )
    return [
        GeneratedFile(
            f"{base}/monitor/config-{alignment}-workflow-failed-monitor.yaml",
            WORKFLOW_FAILED_MONITOR_TEMPLATE.format(**values),
        ),
        GeneratedFile(
            f"{base}/monitor/config-{alignment}-quality-checks-failed-monitor.yaml",
            QUALITY_FAILED_MONITOR_TEMPLATE.format(**values),
        ),
        GeneratedFile(
            f"{base}/pager/config-{alignment}-workflow-failed-pager.yaml",
            WORKFLOW_FAILED_PAGER_TEMPLATE.format(**values),
        ),
    ]


def _source_aligned_files(product: DataProduct) -> list[GeneratedFile]:
    e = product.entity
    values = dict(entity=e, name=product.name, cluster=product.cluster, owner=product.owner)
    input_ref = f"dataos://{product.depot}" if product.depot else f"dataos://{product.source_type}"
    files = [
        GeneratedFile(
            f"{e}/build/data-processing/config-{e}-flare.yaml",
            FLARE_WORKFLOW_TEMPLATE.format(inputs=_flare_inputs(product), **values),
        ),
        GeneratedFile(f"{e}/build/quality/config-{e}-quality.yaml", QUALITY_WORKFLOW_TEMPLATE.format(**values)),
        GeneratedFile(f"{e}/deploy/scanner.yaml", SOURCE_SCANNER_TEMPLATE.format(**values)),
        GeneratedFile(
            f"{e}/deploy/config-{e}-bundle.yaml",
            BUNDLE_TEMPLATE.format(entity=e, alignment="source", resource_file=f"{e}/deploy/pipeline.yaml"),
        ),
        GeneratedFile(
            f"{e}/deploy/config-{e}-dp.yaml",
            SOURCE_DATA_PRODUCT_TEMPLATE.format(input_ref=input_ref, **values),
        ),
        GeneratedFile(f"{e}/deploy/pipeline.yaml", PIPELINE_TEMPLATE.format(**values)),
    ]
    return files + _observability_files(product, "source")


# --- Consumer-aligned ---


def semantic_table(entity: str) -> TableDefinition:
    """Starter semantic model table for an entity landed in the lakehouse."""
    return TableDefinition(
        name=entity,
        description=f"Comprehensive {entity} data for business analytics, reporting, and operational insights",
        data_source="lakehouse",
        schema="sandbox",
        dimensions=[
            Dimension(
                name=f"{entity}_id",
                description=f"Primary business identifier for {entity} used in data relationships and analytics",
                sql=f"{entity}_id",
                primary_key=True,
            ),
            Dimension(name=f"{entity}_name", description=f"Name of the {entity}", sql=f"{entity}_name"),
            Dimension(name="created_at", description=f"Creation timestamp for {entity}", type="time", sql="created_at"),
            Dimension(name="updated_at", description=f"Last update timestamp for {entity}", type="time", sql="updated_at"),
        ],
        measures=[
            Measure(
                name=f"total_{entity}",
                description=f"Total count of {entity} records for business metrics and KPI calculations",
                type="count",
                sql=f"{entity}_id",
            ),
        ],
    )


def _activation_readme(entity: str, layer: dict) -> str:
    structure = "".join(f"- `{path}` - {text}\n" for path, text in layer["structure"])
    return ACTIVATION_README_TEMPLATE.format(
        title=layer["title"],
        entity=entity,
        what=layer["what"],
        purpose=layer["purpose"],
        structure=structure,
        usage=layer["usage"].format(entity=entity),
    )


def _consumer_aligned_files(product: DataProduct, settings: Settings | None) -> list[GeneratedFile]:
    e = product.entity
    entities = product.entities or [e]
    modeled = product.semantic_entities or entities
    model_dir = f"{e}/build/semantic-model/{e}/model"

    inputs = "".join(CONSUMER_INPUT_TEMPLATE.format(entity=src) for src in entities)
    files = [
        GeneratedFile(
            f"{e}/deploy/config-{e}-dp.yaml",
            CONSUMER_DATA_PRODUCT_TEMPLATE.format(entity=e, name=product.name, owner=product.owner, inputs=inputs),
        ),
        GeneratedFile(
            f"{e}/deploy/config-{e}-bundle.yaml",
            BUNDLE_TEMPLATE.format(
                entity=e, alignment="consumer", resource_file=f"{e}/deploy/config-data-product-scanner.yaml",
            ),
        ),
        GeneratedFile(f"{e}/deploy/config-data-product-scanner.yaml", CONSUMER_SCANNER_TEMPLATE.format(entity=e)),
    ]
    for key, layer in ACTIVATION_LAYERS.items():
        files.append(GeneratedFile(f"{e}/activation/{key}/README.md", _activation_readme(e, layer)))
    files.append(
        GeneratedFile(f"{e}/build/access-control/{e}-access-control.yaml", ACCESS_CONTROL_TEMPLATE.format(entity=e))
    )

    for entity in modeled:
        table = semantic_table(entity)
        files.append(GeneratedFile(f"{model_dir}/sqls/{entity}.sql", render_table_sql(table)))
        files.append(GeneratedFile(f"{model_dir}/tables/{entity}.yaml", render_table_yaml(table)))
    files.append(GeneratedFile(f"{model_dir}/user_groups.yml", render_user_groups_yaml(settings)))
    files.append(
        GeneratedFile(
            f"{e}/build/semantic-model/{e}/deployment.yaml",
            render_deployment_yaml(e, settings, base_dir=model_dir),
        )
    )
    return files + _observability_files(product, "consumer")


def generate_data_product_files(product: DataProduct, settings: Settings | None = None) -> list[GeneratedFile]:
    """Render every file of a single data product."""
    if product.type == "consumer":
        files = _consumer_aligned_files(product, settings)
    else:
        files = _source_aligned_files(product)
    logger.debug("Rendered %d file(s) for %s-aligned product %s", len(files), product.type, product.entity)
    return files


# --- Whole project ---


def _infra_files(spec: ProjectSpec) -> list[GeneratedFile]:
    name = spec.project_name
    files = []
    for depot in spec.depots:
        env_prefix = re.sub(r"\W", "_", depot.name).upper()
        values = dict(depot=depot.name, depot_type=depot.type, name=name, env_prefix=env_prefix)
        files.append(GeneratedFile(f"infra/secrets/{depot.name}-r.yaml", INSTANCE_SECRET_TEMPLATE.format(**values)))
        files.append(GeneratedFile(f"infra/depots/{depot.name}.yaml", DEPOT_TEMPLATE.format(**values)))
    depots = "".join(CLUSTER_DEPOT_TEMPLATE.format(depot=d.name) for d in spec.depots)
    files.append(
        GeneratedFile(
            f"infra/cluster/{spec.cluster_name}.yaml",
            CLUSTER_TEMPLATE.format(cluster=spec.cluster_name, name=name, depots=depots),
        )
    )
    for scanner in spec.scanners:
        files.append(
            GeneratedFile(
                f"infra/scanners/{scanner.name}.yaml",
                DEPOT_SCANNER_TEMPLATE.format(
                    scanner=scanner.name, depot=scanner.depot, include_pattern=scanner.include_pattern or "*",
                ),
            )
        )
    return files


def _depot_for(spec: ProjectSpec, source_type: str) -> str:
    for depot in spec.depots:
        if normalize_source_type(depot.type) == source_type:
            return depot.name
    return spec.depots[0].name if spec.depots else ""


def data_products(spec: ProjectSpec) -> list[DataProduct]:
    """Expand a project spec into its source-aligned products plus the consumer layer."""
    fallback_type = spec.depots[0].type if spec.depots else DEFAULT_SOURCE_TYPE
    products = []
    for source in spec.sources:
        entity = source.entity.strip()
        if not entity:
            continue
        source_type = normalize_source_type(source.source_type or fallback_type)
        products.append(
            DataProduct(
                name=spec.project_name,
                entity=entity,
                type="source",
                source_type=source_type,
                depot=_depot_for(spec, source_type),
                cluster=spec.cluster_name,
                owner=spec.owner,
            )
        )
    products.append(
        DataProduct(
            name=spec.project_name,
            entity=spec.consumption_layer.strip(),
            type="consumer",
            entities=spec.entities,
            semantic_entities=spec.modeled_entities,
            depot=spec.depots[0].name if spec.depots else "",
            cluster=spec.cluster_name,
            owner=spec.owner,
        )
    )
    return products


def generate_project_files(spec: ProjectSpec, settings: Settings | None = None) -> list[GeneratedFile]:
    """Render the whole project. Raises ProjectSpecError when the spec is incomplete."""
    errors = validate_project_spec(spec)
    if errors:
        raise ProjectSpecError(errors)

    files: list[GeneratedFile] = []
    for product in data_products(spec):
        files.extend(generate_data_product_files(product, settings))
    files.extend(_infra_files(spec))
    logger.info("Scaffolded project %r: %d file(s)", spec.project_name, len(files))
    return files


def project_archive_name(spec: ProjectSpec) -> str:
    return f"{spec.project_name.strip() or 'data-product'}-project.zip"
