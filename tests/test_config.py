"""Tests for dpgen.yml loading."""

from pathlib import Path

import pytest

from dpgen.config import ConfigError, Settings, load_config


def test_load_missing_config(tmp_path):
    """A directory without dpgen.yml yields defaults."""
    settings = load_config(tmp_path)
    assert settings.project_dir == tmp_path
    assert settings.defaults.source == "icebase"
    assert settings.defaults.schema == "sandbox"
    assert settings.lens.compute == "runnable-default"
    assert settings.lens.router.replicas is None
    assert [g.name for g in settings.user_groups] == ["default"]
    assert settings.server.max_sql_length == 100_000


def test_load_config(tmp_path):
    (tmp_path / "dpgen.yml").write_text(
        """
log_level: DEBUG

defaults:
  source: lakehouse
  schema: bronze

lens:
  compute: gpu-pool
  sync_ref: main
  api:
    replicas: 2
    resources:
      limits:
        cpu: 4000m
        memory: 4Gi

user_groups:
  - name: analysts
    api_scopes: [data]
    includes: [orders]

server:
  cors_origins: ["http://localhost:8080"]
  max_sql_length: 500
"""
    )
    settings = load_config(tmp_path)
    assert settings.log_level == "DEBUG"
    assert settings.defaults.source == "lakehouse"
    assert settings.defaults.schema == "bronze"
    assert settings.lens.compute == "gpu-pool"
    assert settings.lens.api.replicas == 2
    assert settings.lens.api.resources.limits.memory == "4Gi"
    assert settings.lens.api.resources.requests.cpu == "100m"
    assert settings.lens.worker.replicas == 1
    assert settings.user_groups[0].name == "analysts"
    assert settings.user_groups[0].includes == ["orders"]
    assert settings.server.cors_origins == ["http://localhost:8080"]
    assert settings.server.max_sql_length == 500


def test_env_var_expansion(tmp_path, monkeypatch):
    monkeypatch.setenv("LENS_REPO", "https://git.example.com/lens")
    (tmp_path / "dpgen.yml").write_text("lens:\n  repo_url: ${LENS_REPO}\n  secret: ${UNSET_DPGEN_VAR}\n")
    settings = load_config(tmp_path)
    assert settings.lens.repo_url == "https://git.example.com/lens"
    assert settings.lens.secret == "${UNSET_DPGEN_VAR}"


def test_empty_file_is_defaults(tmp_path):
    (tmp_path / "dpgen.yml").write_text("")
    assert load_config(tmp_path).lens.secret == "bitbucket-r"


def test_invalid_yaml(tmp_path):
    (tmp_path / "dpgen.yml").write_text("lens: [unclosed\n")
    with pytest.raises(ConfigError, match="not valid YAML"):
        load_config(tmp_path)


def test_top_level_must_be_mapping(tmp_path):
    (tmp_path / "dpgen.yml").write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_invalid_values(tmp_path):
    (tmp_path / "dpgen.yml").write_text("lens:\n  api:\n    replicas: many\n")
    with pytest.raises(ConfigError, match="Invalid dpgen.yml"):
        load_config(tmp_path)


def test_user_group_requires_name(tmp_path):
    (tmp_path / "dpgen.yml").write_text("user_groups:\n  - api_scopes: [data]\n")
    with pytest.raises(ConfigError, match="need a name"):
        load_config(tmp_path)


def test_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config().project_dir == Path.cwd()


def test_settings_carry_only_declared_fields(tmp_path):
    (tmp_path / "dpgen.yml").write_text("unknown_section: {a: 1}\n")
    settings = load_config(tmp_path)
    assert not Settings.__private_attributes__
    assert not Settings.model_config.get("arbitrary_types_allowed")
    assert "unknown_section" not in settings.model_dump()
