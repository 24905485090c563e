"""Tests for the Typer CLI."""

from __future__ import annotations

import json
import zipfile

import pytest
import yaml
from typer.testing import CliRunner

from dpgen.cli import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "customers.sql").write_text("SELECT customer_id, name, created_at FROM crm.customers")
    (tmp_path / "orders.sql").write_text(
        "SELECT o.order_id, CAST(o.total AS double) AS total FROM icebase.sales.orders o"
    )
    return tmp_path


def test_extract_yaml(workdir):
    result = runner.invoke(app, ["extract", "customers.sql"])
    assert result.exit_code == 0, result.output
    data = yaml.safe_load(result.output)
    assert data["name"] == "customers"
    assert data["schema"] == "crm"
    assert [d["name"] for d in data["dimensions"]] == ["customer_id", "name", "created_at"]


def test_extract_json(workdir):
    result = runner.invoke(app, ["extract", "orders.sql", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["dimensions"][1] == {
        "name": "total",
        "description": "Total",
        "type": "number",
        "sql": "o.total",
        "primary_key": False,
    }


def test_extract_uses_configured_defaults(workdir):
    (workdir / "dpgen.yml").write_text("defaults:\n  source: lakehouse\n  schema: bronze\n")
    (workdir / "bare.sql").write_text("SELECT id FROM events")
    result = runner.invoke(app, ["extract", "bare.sql", "--json"])
    data = json.loads(result.output)
    assert (data["data_source"], data["schema"]) == ("lakehouse", "bronze")


def test_extract_error(workdir):
    (workdir / "bad.sql").write_text("SELECT 1")
    result = runner.invoke(app, ["extract", "bad.sql"])
    assert result.exit_code == 1
    assert "Invalid SQL query" in result.output


def test_extract_missing_file(workdir):
    result = runner.invoke(app, ["extract", "nope.sql"])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_lens_writes_tree(workdir):
    result = runner.invoke(app, ["lens", "sales-lens", "customers.sql", "orders.sql", "--out", "out"])
    assert result.exit_code == 0, result.output
    model = workdir / "out" / "sales-lens" / "model"
    assert (model / "sqls" / "customers.sql").exists()
    assert (model / "tables" / "orders.yaml").exists()
    assert (workdir / "out" / "sales-lens" / "deployment.yaml").exists()
    sql = (model / "sqls" / "orders.sql").read_text()
    assert "  o.total as total" in sql


def test_lens_refuses_overwrite(workdir):
    args = ["lens", "sales-lens", "customers.sql", "--out", "out"]
    assert runner.invoke(app, args).exit_code == 0
    result = runner.invoke(app, args)
    assert result.exit_code == 1
    assert runner.invoke(app, [*args, "--overwrite"]).exit_code == 0


def test_lens_zip(workdir):
    result = runner.invoke(app, ["lens", "sales-lens", "customers.sql", "--zip", "--out", "dist"])
    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(workdir / "dist" / "sales-lens-lens.zip") as zf:
        assert "sales-lens/model/tables/customers.yaml" in zf.namelist()


def test_lens_validation_failure(workdir):
    result = runner.invoke(app, ["lens", "Sales Lens", "customers.sql"])
    assert result.exit_code == 1
    assert "invalid" in result.output


def test_lens_duplicate_tables(workdir):
    result = runner.invoke(app, ["lens", "sales-lens", "customers.sql", "customers.sql"])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_init_and_scaffold(workdir):
    result = runner.invoke(app, ["init", "retail", "--dir", "retail-spec"])
    assert result.exit_code == 0, result.output
    spec_file = workdir / "retail-spec" / "project.yml"
    assert spec_file.exists()
    assert (workdir / "retail-spec" / "dpgen.yml").exists()

    result = runner.invoke(app, ["scaffold", str(spec_file), "--out", "generated"])
    assert result.exit_code == 0, result.output
    generated = workdir / "generated"
    assert (generated / "customer" / "deploy" / "pipeline.yaml").exists()
    assert (generated / "orders" / "build" / "quality" / "config-orders-quality.yaml").exists()
    assert (generated / "retail-analytics" / "deploy" / "config-retail-analytics-dp.yaml").exists()
    assert (generated / "infra" / "cluster" / "retail-cluster.yaml").exists()


def test_init_dpgen_yml_is_loadable(workdir):
    runner.invoke(app, ["init", "retail", "--dir", "."])
    from dpgen.config import load_config

    settings = load_config(workdir)
    assert settings.lens.secret == "bitbucket-r"


def test_scaffold_zip(workdir):
    runner.invoke(app, ["init", "retail", "--dir", "spec"])
    result = runner.invoke(app, ["scaffold", "spec/project.yml", "--zip"])
    assert result.exit_code == 0, result.output
    assert (workdir / "retail-project.zip").exists()


def test_scaffold_incomplete_spec(workdir):
    (workdir / "spec.yml").write_text("project_name: retail\n")
    result = runner.invoke(app, ["scaffold", "spec.yml"])
    assert result.exit_code == 1
    assert "Cluster name is required" in result.output


def test_scaffold_zip_duplicate_depots(workdir):
    (workdir / "spec.yml").write_text(
        """
project_name: retail
cluster_name: retail-cluster
depots:
  - {name: d, type: bigquery}
  - {name: d, type: postgres}
scanners:
  - {name: s, depot: d}
sources:
  - {entity: customer}
consumption_layer: analytics
"""
    )
    result = runner.invoke(app, ["scaffold", "spec.yml", "--zip"])
    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert 'Duplicate depot "d"' in result.output
    assert not (workdir / "retail-project.zip").exists()


def test_scaffold_zip_reports_archive_errors(workdir, monkeypatch):
    from dpgen.engine import scaffold
    from dpgen.engine.archive import GeneratedFile

    runner.invoke(app, ["init", "retail", "--dir", "spec"])
    monkeypatch.setattr(
        scaffold, "generate_project_files",
        lambda spec, settings=None: [GeneratedFile("a.yaml", "1"), GeneratedFile("a.yaml", "2")],
    )
    result = runner.invoke(app, ["scaffold", "spec/project.yml", "--zip"])
    assert result.exit_code == 1
    assert "Duplicate path" in result.output
    assert not (workdir / "retail-project.zip").exists()


def test_scaffold_invalid_yaml(workdir):
    (workdir / "spec.yml").write_text("sources: [unclosed\n")
    result = runner.invoke(app, ["scaffold", "spec.yml"])
    assert result.exit_code == 1
    assert "Invalid project spec" in result.output


def test_templates(workdir):
    result = runner.invoke(app, ["templates"])
    assert result.exit_code == 0
    assert "sodp" in result.output


def test_templates_by_type(workdir):
    result = runner.invoke(app, ["templates", "--type", "config"])
    assert result.exit_code == 0
    assert yaml.safe_load(result.output)["cluster_name"] == "retail-cluster"
    assert runner.invoke(app, ["templates", "--type", "nope"]).exit_code == 1
