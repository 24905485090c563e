"""Render a LensConfig into semantic model files and a deployable bundle."""

from __future__ import annotations

import logging

from dpgen.config import DEFAULT_SCHEMA, DEFAULT_SOURCE, ServiceConfig, Settings
from dpgen.engine.archive import GeneratedFile, build_zip
from dpgen.engine.models import LensConfig, TableDefinition
from dpgen.engine.validation import validate_lens_config
from dpgen.templates import LENS_DEPLOYMENT_TEMPLATE, LENS_SERVICE_TEMPLATE

logger = logging.getLogger("dpgen.lens")

FALLBACK_PROJECT_NAME = "lens-project"


class LensValidationError(ValueError):
    """Raised when a lens project is exported with validation errors."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Lens project is invalid:\n" + "\n".join(self.errors))


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_table_sql(table: TableDefinition) -> str:
    """SELECT every dimension from the table's fully qualified source."""
    columns = []
    for dim in table.dimensions:
        if dim.sql and dim.sql != dim.name:
            columns.append(f"  {dim.sql} as {dim.name}")
        else:
            columns.append(f"  {dim.name}")
    source = table.data_source or DEFAULT_SOURCE
    schema = table.schema or DEFAULT_SCHEMA
    return "SELECT\n" + ",\n".join(columns) + f"\nFROM\n  {source}.{schema}.{table.name}\n"


def render_table_yaml(table: TableDefinition) -> str:
    description = table.description or (
        f"Comprehensive {table.name} data for business analytics, reporting, and operational insights"
    )
    lines = [
        "tables:",
        f"  - name: {table.name}",
        f"    sql: {{{{ load_sql('{table.name}') }}}}",
        f"    description: {_quote(description)}",
        f"    data_source: {table.data_source}",
        "    public: true",
        "",
    ]

    if table.joins:
        lines.append("    joins:")
        for join in table.joins:
            if not (join.name and join.sql):
                continue
            lines += [
                f"      - name: {join.name}",
                f"        relationship: {join.relationship}",
                f"        sql: {_quote(join.sql)}",
                "",
            ]

    if table.dimensions:
        lines.append("    dimensions:")
        for dim in table.dimensions:
            if not dim.name:
                continue
            lines += [
                f"      - name: {dim.name}",
                f"        description: {_quote(dim.description or f'{dim.name} field')}",
                f"        type: {dim.type}",
                f"        sql: {_quote(dim.sql or dim.name)}",
            ]
            if dim.primary_key:
                lines.append("        primary_key: true")
            lines.append("")

    if table.measures:
        lines.append("    measures:")
        for measure in table.measures:
            if not measure.name:
                continue
            lines += [
                f"      - name: {measure.name}",
                f"        sql: {_quote(measure.sql or measure.name)}",
                f"        type: {measure.type}",
                f"        description: {_quote(measure.description or f'{measure.name} metric')}",
                "",
            ]

    return "\n".join(lines) + "\n"


def render_user_groups_yaml(settings: Settings | None = None) -> str:
    settings = settings or Settings()
    lines = ["user_groups:"]
    for group in settings.user_groups:
        lines.append(f"  - name: {group.name}")
        lines.append("    api_scopes:")
        lines += [f"      - {scope}" for scope in group.api_scopes]
        if isinstance(group.includes, str):
            lines.append(f"    includes: {_quote(group.includes)}")
        else:
            lines.append("    includes:")
            lines += [f"      - {item}" for item in group.includes]
        if group.excludes:
            lines.append("    excludes:")
            lines += [f"      - {item}" for item in group.excludes]
    return "\n".join(lines) + "\n"


def _render_service(name: str, service: ServiceConfig) -> str:
    replicas = f"    replicas: {service.replicas}\n" if service.replicas is not None else ""
    return LENS_SERVICE_TEMPLATE.format(
        service=name,
        replicas=replicas,
        log_level=service.log_level,
        request_cpu=service.resources.requests.cpu,
        request_memory=service.resources.requests.memory,
        limit_cpu=service.resources.limits.cpu,
        limit_memory=service.resources.limits.memory,
    )


def render_deployment_yaml(
    project_name: str,
    settings: Settings | None = None,
    base_dir: str | None = None,
) -> str:
    """Lens deployment manifest. ``base_dir`` defaults to ``<project>/model``."""
    settings = settings or Settings()
    lens = settings.lens
    name = project_name or FALLBACK_PROJECT_NAME
    services = "".join(
        _render_service(svc, getattr(lens, svc)) for svc in ("api", "worker", "router")
    )
    return LENS_DEPLOYMENT_TEMPLATE.format(
        name=name,
        compute=lens.compute,
        secret=lens.secret,
        source_type=lens.source_type,
        source_name=lens.source_name,
        catalog=lens.catalog,
        repo_url=lens.repo_url,
        base_dir=base_dir or f"{name}/model",
        sync_ref=lens.sync_ref,
        services=services,
    )


def build_lens_files(config: LensConfig, settings: Settings | None = None) -> list[GeneratedFile]:
    """Every file of a lens bundle, rooted at the project directory."""
    project = config.project_name or FALLBACK_PROJECT_NAME
    files: list[GeneratedFile] = []
    for table in config.tables:
        if not table.name:
            continue
        files.append(GeneratedFile(f"{project}/model/sqls/{table.name}.sql", render_table_sql(table)))
        files.append(GeneratedFile(f"{project}/model/tables/{table.name}.yaml", render_table_yaml(table)))
    files.append(GeneratedFile(f"{project}/model/user_groups.yml", render_user_groups_yaml(settings)))
    files.append(GeneratedFile(f"{project}/deployment.yaml", render_deployment_yaml(project, settings)))
    return files


def lens_archive_name(config: LensConfig) -> str:
    return f"{config.project_name or FALLBACK_PROJECT_NAME}-lens.zip"


def build_lens_package(config: LensConfig, settings: Settings | None = None) -> bytes:
    """Validate, render, and zip a lens project.

    Raises LensValidationError listing every problem when the project is
    not exportable; nothing is rendered in that case.
    """
    report = validate_lens_config(config)
    if not report.valid:
        raise LensValidationError(report.errors)
    for warning in report.warnings:
        logger.warning("%s", warning)
    files = build_lens_files(config, settings)
    logger.info("Packaged lens %r with %d table(s)", config.project_name, len(config.tables))
    return build_zip(files)
