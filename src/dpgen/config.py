"""Generator configuration: dpgen.yml parsing and defaults."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILENAME = "dpgen.yml"

DEFAULT_SOURCE = "icebase"
DEFAULT_SCHEMA = "sandbox"


class ConfigError(ValueError):
    """Raised when dpgen.yml cannot be parsed."""


class DefaultsConfig(BaseModel):
    """Fallback qualifiers for tables whose FROM clause omits them."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source: str = DEFAULT_SOURCE
    schema_name: str = Field(default=DEFAULT_SCHEMA, alias="schema")

    @property
    def schema(self) -> str:
        return self.schema_name


class ResourceSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")
    cpu: str
    memory: str


class ResourcesConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")
    requests: ResourceSpec = Field(default_factory=lambda: ResourceSpec(cpu="100m", memory="256Mi"))
    limits: ResourceSpec = Field(default_factory=lambda: ResourceSpec(cpu="2000m", memory="2048Mi"))


class ServiceConfig(BaseModel):
    """Sizing for one lens service (api, worker, router)."""
    model_config = ConfigDict(extra="ignore")

    replicas: int | None = 1  # router has no replica count
    log_level: str = "info"
    resources: ResourcesConfig = Field(default_factory=ResourcesConfig)


class LensDeploymentConfig(BaseModel):
    """Values rendered into a lens deployment.yaml."""
    model_config = ConfigDict(extra="ignore")

    compute: str = "runnable-default"
    secret: str = "bitbucket-r"
    source_type: str = "minerva"
    source_name: str = "system"
    catalog: str = DEFAULT_SOURCE
    repo_url: str = "https://bitbucket.org/tmdc/lens2"
    sync_ref: str = "lens2-dev"
    api: ServiceConfig = Field(default_factory=ServiceConfig)
    worker: ServiceConfig = Field(default_factory=ServiceConfig)
    router: ServiceConfig = Field(default_factory=lambda: ServiceConfig(replicas=None))


class UserGroupConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    api_scopes: list[str] = Field(
        default_factory=lambda: ["meta", "data", "graphql", "jobs", "source"],
    )
    includes: str | list[str] = "*"
    excludes: list[str] = Field(default_factory=list)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
    )
    max_sql_length: int = 100_000


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    log_level: str = "INFO"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    lens: LensDeploymentConfig = Field(default_factory=LensDeploymentConfig)
    user_groups: list[UserGroupConfig] = Field(
        default_factory=lambda: [UserGroupConfig(name="default")],
    )
    server: ServerConfig = Field(default_factory=ServerConfig)
    project_dir: Path = Field(default_factory=Path.cwd)


def _expand_env_vars(value: Any) -> Any:
    """Expand ${ENV_VAR} references in string values."""
    if isinstance(value, str):
        return re.sub(
            r"\$\{(\w+)\}",
            lambda m: os.environ.get(m.group(1), m.group(0)),
            value,
        )
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    return value


def _parse_user_groups(raw_groups: list[dict]) -> list[UserGroupConfig]:
    groups = []
    for group_raw in raw_groups:
        if not isinstance(group_raw, dict) or not group_raw.get("name"):
            raise ConfigError(f"user_groups entries need a name, got: {group_raw!r}")
        groups.append(UserGroupConfig.model_validate(group_raw))
    return groups


def load_config(project_dir: Path | None = None) -> Settings:
    """Load dpgen.yml from the given directory (or cwd).

    Missing file means defaults. Any ``${VAR}`` in string values is
    replaced with the environment value when one is set.
    """
    project_dir = Path(project_dir) if project_dir else Path.cwd()
    config_path = project_dir / CONFIG_FILENAME

    if not config_path.exists():
        return Settings(project_dir=project_dir)

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{CONFIG_FILENAME} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the top level")
    raw = _expand_env_vars(raw)

    try:
        settings = Settings(
            log_level=str(raw.get("log_level", "INFO")),
            defaults=DefaultsConfig.model_validate(raw.get("defaults") or {}),
            lens=LensDeploymentConfig.model_validate(raw.get("lens") or {}),
            server=ServerConfig.model_validate(raw.get("server") or {}),
            project_dir=project_dir,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid {CONFIG_FILENAME}: {e}") from e

    if "user_groups" in raw:
        settings.user_groups = _parse_user_groups(raw.get("user_groups") or [])
    return settings
