"""Tests for data product project scaffolding."""

from __future__ import annotations

import pytest
import yaml

from dpgen.engine.scaffold import (
    DataProduct,
    Depot,
    ProjectSpec,
    ProjectSpecError,
    Scanner,
    SourceEntity,
    data_products,
    generate_data_product_files,
    generate_project_files,
    normalize_source_type,
    project_archive_name,
    validate_project_spec,
)


@pytest.fixture
def spec():
    return ProjectSpec(
        project_name="retail",
        cluster_name="retail-cluster",
        depots=[Depot(name="retail-bigquery", type="bigquery")],
        scanners=[Scanner(name="retail-scanner", depot="retail-bigquery", include_pattern="sandbox.*")],
        sources=[
            SourceEntity(entity="customer", source_type="bigquery"),
            SourceEntity(entity="orders", source_type="postgres"),
        ],
        consumption_layer="analytics",
    )


def _by_path(files):
    return {f.path: f.content for f in files}


class TestSourceTypes:
    @pytest.mark.parametrize(
        "value, expected",
        [("bigquery", "bigquery"), (" Snowflake ", "snowflake"), ("S3", "s3"), ("mysql", "other"), ("", "other"), (None, "other")],
    )
    def test_normalize(self, value, expected):
        assert normalize_source_type(value) == expected

    @pytest.mark.parametrize(
        "source_type, marker",
        [
            ("s3", "thirdparty01:sandbox/customer.csv"),
            ("postgres", "org.postgresql.Driver"),
            ("bigquery", "format: Bigquery"),
            ("snowflake", "format: snowflake"),
            ("other", "dataos://warehouse:sandbox/customer"),
        ],
    )
    def test_flare_input_follows_source_type(self, source_type, marker):
        product = DataProduct(name="retail", entity="customer", source_type=source_type, depot="warehouse")
        flare = _by_path(generate_data_product_files(product))["customer/build/data-processing/config-customer-flare.yaml"]
        assert marker in flare


class TestSourceAligned:
    def test_file_set(self):
        product = DataProduct(name="retail", entity="customer", source_type="bigquery")
        paths = [f.path for f in generate_data_product_files(product)]
        assert paths == [
            "customer/build/data-processing/config-customer-flare.yaml",
            "customer/build/quality/config-customer-quality.yaml",
            "customer/deploy/scanner.yaml",
            "customer/deploy/config-customer-bundle.yaml",
            "customer/deploy/config-customer-dp.yaml",
            "customer/deploy/pipeline.yaml",
            "customer/observability/monitor/config-source-workflow-failed-monitor.yaml",
            "customer/observability/monitor/config-source-quality-checks-failed-monitor.yaml",
            "customer/observability/pager/config-source-workflow-failed-pager.yaml",
        ]

    def test_files_are_valid_yaml(self):
        product = DataProduct(name="retail", entity="customer", source_type="s3", cluster="retail-cluster")
        for f in generate_data_product_files(product):
            docs = list(yaml.safe_load_all(f.content))
            assert docs, f.path

    def test_pipeline_references_workflows(self):
        product = DataProduct(name="retail", entity="customer")
        pipeline = yaml.safe_load(_by_path(generate_data_product_files(product))["customer/deploy/pipeline.yaml"])
        files = [step["file"] for step in pipeline["workflow"]["dag"]]
        assert files == [
            "customer/build/data-processing/config-customer-flare.yaml",
            "customer/build/quality/config-customer-quality.yaml",
        ]

    def test_pager_uses_env_placeholder(self):
        product = DataProduct(name="retail", entity="customer")
        pager = yaml.safe_load(
            _by_path(generate_data_product_files(product))[
                "customer/observability/pager/config-source-workflow-failed-pager.yaml"
            ]
        )
        assert pager["pager"]["output"]["webHook"]["url"] == "${TEAMS_WEBHOOK_URL}"
        assert "{{ .CreateTime }}" in pager["pager"]["output"]["webHook"]["bodyTemplate"]


class TestConsumerAligned:
    @pytest.fixture
    def consumer(self):
        return DataProduct(
            name="retail",
            entity="analytics",
            type="consumer",
            entities=["customer", "orders"],
            semantic_entities=["customer"],
            cluster="retail-cluster",
        )

    def test_file_set(self, consumer):
        paths = [f.path for f in generate_data_product_files(consumer)]
        model = "analytics/build/semantic-model/analytics/model"
        assert paths == [
            "analytics/deploy/config-analytics-dp.yaml",
            "analytics/deploy/config-analytics-bundle.yaml",
            "analytics/deploy/config-data-product-scanner.yaml",
            "analytics/activation/custom-application/README.md",
            "analytics/activation/data-apis/README.md",
            "analytics/activation/notebook/README.md",
            "analytics/build/access-control/analytics-access-control.yaml",
            f"{model}/sqls/customer.sql",
            f"{model}/tables/customer.yaml",
            f"{model}/user_groups.yml",
            "analytics/build/semantic-model/analytics/deployment.yaml",
            "analytics/observability/monitor/config-consumer-workflow-failed-monitor.yaml",
            "analytics/observability/monitor/config-consumer-quality-checks-failed-monitor.yaml",
            "analytics/observability/pager/config-consumer-workflow-failed-pager.yaml",
        ]

    def test_data_product_inputs_list_every_source(self, consumer):
        files = _by_path(generate_data_product_files(consumer))
        dp = yaml.safe_load(files["analytics/deploy/config-analytics-dp.yaml"])
        refs = [i["ref"] for i in dp["v1beta"]["data"]["inputs"]]
        assert refs == ["dataset:lakehouse:sandbox:customer", "dataset:lakehouse:sandbox:orders"]

    def test_semantic_model(self, consumer):
        files = _by_path(generate_data_product_files(consumer))
        model = "analytics/build/semantic-model/analytics/model"
        assert "FROM\n  lakehouse.sandbox.customer\n" in files[f"{model}/sqls/customer.sql"]
        table_yaml = files[f"{model}/tables/customer.yaml"]
        assert "sql: {{ load_sql('customer') }}" in table_yaml
        assert "      - name: customer_id\n" in table_yaml
        assert "primary_key: true" in table_yaml
        deployment = yaml.safe_load(files["analytics/build/semantic-model/analytics/deployment.yaml"])
        assert deployment["lens"]["repo"]["lensBaseDir"] == model

    def test_access_control_has_two_policies(self, consumer):
        files = _by_path(generate_data_product_files(consumer))
        docs = list(yaml.safe_load_all(files["analytics/build/access-control/analytics-access-control.yaml"]))
        assert [d["name"] for d in docs] == ["analytics-masking-policy", "analytics-piireader"]

    def test_activation_readme(self, consumer):
        files = _by_path(generate_data_product_files(consumer))
        readme = files["analytics/activation/notebook/README.md"]
        assert readme.startswith("# Notebooks for analytics")
        assert "- `exploration/` - Data exploration notebooks" in readme


class TestValidation:
    def test_complete_spec(self, spec):
        assert validate_project_spec(spec) == []

    def test_empty_spec(self):
        errors = validate_project_spec(ProjectSpec())
        assert errors == [
            "Project name is required",
            "Cluster name is required",
            "At least one depot is required",
            "At least one scanner is required",
            "At least one source entity is required",
            "Consumption layer name is required",
        ]

    def test_incomplete_rows(self, spec):
        spec = spec.model_copy(update={
            "depots": [Depot(name="d1", type="")],
            "scanners": [Scanner(name="s1", depot="missing")],
        })
        errors = validate_project_spec(spec)
        assert "Depot #1: name and type are required" in errors
        assert 'Scanner "s1" references unknown depot "missing"' in errors

    def test_entity_rules(self, spec):
        spec = spec.model_copy(update={
            "sources": [SourceEntity(entity="customer"), SourceEntity(entity="customer"), SourceEntity(entity="bad/name")],
            "consumption_layer": "customer",
        })
        errors = validate_project_spec(spec)
        assert 'Duplicate entity "customer"' in errors
        assert any("bad/name" in e for e in errors)
        assert 'Consumption layer "customer" collides with a source entity of the same name' in errors

    def test_duplicate_names(self, spec):
        spec = spec.model_copy(update={
            "depots": [Depot(name="d", type="bigquery"), Depot(name="d", type="postgres")],
            "scanners": [Scanner(name="s", depot="d"), Scanner(name="s", depot="d")],
            "semantic_entities": ["customer", "customer"],
        })
        errors = validate_project_spec(spec)
        assert 'Duplicate depot "d"' in errors
        assert 'Duplicate scanner "s"' in errors
        assert 'Duplicate semantic entity "customer"' in errors
        with pytest.raises(ProjectSpecError):
            generate_project_files(spec)

    @pytest.mark.parametrize(
        "update, label",
        [
            ({"cluster_name": "../cluster"}, "Cluster"),
            ({"depots": [Depot(name="a/b", type="bigquery")], "scanners": [Scanner(name="s", depot="a/b")]}, "Depot"),
            ({"scanners": [Scanner(name="..", depot="retail-bigquery")]}, "Scanner"),
        ],
    )
    def test_path_unsafe_names(self, spec, update, label):
        errors = validate_project_spec(spec.model_copy(update=update))
        assert any(e.startswith(f'{label} "') and "may only contain" in e for e in errors)

    def test_blank_entities_ignored(self, spec):
        spec = spec.model_copy(update={"sources": [*spec.sources, SourceEntity(entity="  ")]})
        assert validate_project_spec(spec) == []


class TestProject:
    def test_products(self, spec):
        products = data_products(spec)
        assert [(p.entity, p.type, p.source_type) for p in products] == [
            ("customer", "source", "bigquery"),
            ("orders", "source", "postgres"),
            ("analytics", "consumer", "other"),
        ]
        assert products[0].depot == "retail-bigquery"
        assert products[1].depot == "retail-bigquery"
        assert products[2].semantic_entities == ["customer", "orders"]

    def test_source_type_falls_back_to_first_depot(self, spec):
        spec = spec.model_copy(update={"sources": [SourceEntity(entity="customer")]})
        assert data_products(spec)[0].source_type == "bigquery"

    def test_custom_semantic_entities(self, spec):
        spec = spec.model_copy(update={"semantic_entities": ["orders", " "]})
        assert data_products(spec)[-1].semantic_entities == ["orders"]

    def test_generate_project_files(self, spec):
        files = generate_project_files(spec)
        paths = [f.path for f in files]
        assert len(paths) == len(set(paths))
        assert len(paths) == 9 + 9 + 16 + 4
        assert "infra/secrets/retail-bigquery-r.yaml" in paths
        assert "infra/depots/retail-bigquery.yaml" in paths
        assert "infra/cluster/retail-cluster.yaml" in paths
        assert "infra/scanners/retail-scanner.yaml" in paths

    def test_infra_files(self, spec):
        files = _by_path(generate_project_files(spec))
        secret = yaml.safe_load(files["infra/secrets/retail-bigquery-r.yaml"])
        assert secret["instance-secret"]["data"]["username"] == "${RETAIL_BIGQUERY_USERNAME}"
        cluster = yaml.safe_load(files["infra/cluster/retail-cluster.yaml"])
        assert cluster["cluster"]["minerva"]["depots"] == [{"address": "dataos://retail-bigquery"}]
        scanner = yaml.safe_load(files["infra/scanners/retail-scanner.yaml"])
        includes = scanner["workflow"]["dag"][0]["spec"]["stackSpec"]["sourceConfig"]["config"]["schemaFilterPattern"]["includes"]
        assert includes == ["sandbox.*"]

    def test_invalid_spec_raises(self):
        with pytest.raises(ProjectSpecError) as excinfo:
            generate_project_files(ProjectSpec(project_name="retail"))
        assert "Cluster name is required" in excinfo.value.errors

    def test_archive_name(self, spec):
        assert project_archive_name(spec) == "retail-project.zip"
        assert project_archive_name(ProjectSpec()) == "data-product-project.zip"
