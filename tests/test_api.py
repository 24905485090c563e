"""Tests for the FastAPI backend."""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def project(tmp_path):
    """A working directory with a minimal dpgen.yml."""
    (tmp_path / "dpgen.yml").write_text(
        """
defaults:
  source: lakehouse
  schema: bronze
server:
  max_sql_length: 2000
"""
    )
    return tmp_path


@pytest.fixture
def client(project):
    import dpgen.server.app as server_app

    server_app.PROJECT_DIR = project
    return TestClient(server_app.app)


LENS_CONFIG = {
    "project_name": "sales-lens",
    "tables": [
        {
            "name": "orders",
            "data_source": "icebase",
            "schema": "sales",
            "dimensions": [
                {"name": "order_id", "type": "string", "sql": "order_id", "primary_key": True},
                {"name": "amount", "type": "number", "sql": "amount"},
            ],
            "measures": [{"name": "total_orders", "type": "count", "sql": "order_id"}],
        }
    ],
}

PROJECT_SPEC = {
    "project_name": "retail",
    "cluster_name": "retail-cluster",
    "depots": [{"name": "retail-bigquery", "type": "bigquery"}],
    "scanners": [{"name": "retail-scanner", "depot": "retail-bigquery", "include_pattern": "sandbox.*"}],
    "sources": [{"entity": "customer", "source_type": "bigquery"}],
    "consumption_layer": "analytics",
}


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# --- Lens ---


def test_extract(client):
    resp = client.post("/api/lens/extract", json={"sql": "SELECT customer_id, name FROM customers"})
    assert resp.status_code == 200
    data = resp.json()
    table = data["table"]
    assert table["name"] == "customers"
    assert table["data_source"] == "lakehouse"
    assert table["schema"] == "bronze"
    assert [d["name"] for d in table["dimensions"]] == ["customer_id", "name"]
    assert table["measures"][0]["sql"] == "customer_id"
    assert data["warnings"] == []


def test_extract_error(client):
    resp = client.post("/api/lens/extract", json={"sql": "SELECT 1"})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["kind"] == "missing_from"
    assert detail["message"] == "Invalid SQL query"
    assert "FROM" in detail["hint"]


def test_extract_returns_warnings(client):
    sql = "SELECT id, ROW_NUMBER() OVER (ORDER BY id) AS rn FROM events"
    resp = client.post("/api/lens/extract", json={"sql": sql})
    assert resp.status_code == 200
    assert len(resp.json()["warnings"]) == 1


def test_extract_rejects_oversized_sql(client):
    sql = "SELECT " + ", ".join(f"c{i}" for i in range(1000)) + " FROM t"
    resp = client.post("/api/lens/extract", json={"sql": sql})
    assert resp.status_code == 400
    assert "too long" in resp.json()["detail"]


def test_validate(client):
    resp = client.post("/api/lens/validate", json=LENS_CONFIG)
    assert resp.status_code == 200
    assert resp.json()["valid"] is True

    bad = {**LENS_CONFIG, "project_name": "Bad Name"}
    data = client.post("/api/lens/validate", json=bad).json()
    assert data["valid"] is False
    assert data["errors"][0].startswith("Project:")


def test_validate_rejects_unknown_dimension_type(client):
    config = {
        "project_name": "sales-lens",
        "tables": [{"name": "t", "dimensions": [{"name": "a", "type": "geometry"}]}],
    }
    assert client.post("/api/lens/validate", json=config).status_code == 422


def test_preview(client):
    resp = client.post("/api/lens/preview", json=LENS_CONFIG)
    assert resp.status_code == 200
    data = resp.json()
    paths = [f["path"] for f in data["files"]]
    assert "sales-lens/model/sqls/orders.sql" in paths
    sql = next(f["content"] for f in data["files"] if f["path"].endswith("orders.sql"))
    assert "icebase.sales.orders" in sql
    assert data["tree"][0]["name"] == "sales-lens"
    assert data["tree"][0]["children"][0]["name"] == "model"


def test_download(client):
    resp = client.post("/api/lens/download", json=LENS_CONFIG)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    assert resp.headers["content-disposition"] == 'attachment; filename="sales-lens-lens.zip"'
    with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
        assert "sales-lens/model/tables/orders.yaml" in zf.namelist()


def test_download_invalid(client):
    config = {**LENS_CONFIG, "tables": []}
    resp = client.post("/api/lens/download", json=config)
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"] == ["At least one table is required"]


# --- Data product ---


def test_data_product_preview(client):
    resp = client.post("/api/data-product/preview", json=PROJECT_SPEC)
    assert resp.status_code == 200
    paths = [f["path"] for f in resp.json()["files"]]
    assert "customer/deploy/config-customer-dp.yaml" in paths
    assert "analytics/deploy/config-analytics-dp.yaml" in paths
    assert "infra/cluster/retail-cluster.yaml" in paths


def test_data_product_download(client):
    resp = client.post("/api/data-product/download", json=PROJECT_SPEC)
    assert resp.status_code == 200
    assert 'filename="retail-project.zip"' in resp.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
        assert "customer/deploy/pipeline.yaml" in zf.namelist()


def test_data_product_incomplete_spec(client):
    resp = client.post("/api/data-product/preview", json={"project_name": "retail"})
    assert resp.status_code == 422
    assert "Cluster name is required" in resp.json()["detail"]["errors"]


# --- Templates ---


def test_templates(client):
    data = client.get("/api/templates").json()
    assert set(data["templates"]) == {"config", "sodp", "model"}


def test_template_by_type(client):
    data = client.get("/api/templates", params={"type": "config"}).json()
    assert data["type"] == "config"
    assert data["example"]["project_name"] == "retail"


def test_unknown_template(client):
    assert client.get("/api/templates", params={"type": "nope"}).status_code == 404


# --- Settings ---


def test_broken_config_is_a_server_error(tmp_path):
    import dpgen.server.app as server_app

    (tmp_path / "dpgen.yml").write_text("lens: [unclosed\n")
    server_app.PROJECT_DIR = tmp_path
    client = TestClient(server_app.app)
    resp = client.post("/api/lens/extract", json={"sql": "SELECT a FROM t"})
    assert resp.status_code == 500
