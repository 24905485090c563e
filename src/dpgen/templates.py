"""Scaffold templates for data product projects.

Large string constants rendered with ``str.format``. Literal braces in the
output are doubled. Kept apart from the generators so the generation logic
stays readable.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# dpgen.yml and sample project spec (`dpgen init`)
# ---------------------------------------------------------------------------

DPGEN_YML_TEMPLATE = """\
# dpgen settings. Every key is optional; ${{VAR}} expands from the environment.
log_level: INFO

defaults:
  source: icebase
  schema: sandbox

lens:
  compute: runnable-default
  secret: bitbucket-r
  source_type: minerva
  source_name: system
  catalog: icebase
  repo_url: https://bitbucket.org/tmdc/lens2
  sync_ref: lens2-dev

user_groups:
  - name: default
    api_scopes: [meta, data, graphql, jobs, source]
    includes: "*"
"""

PROJECT_SPEC_TEMPLATE = """\
# Data product project spec for `dpgen scaffold`.
project_name: {name}
cluster_name: {name}-cluster
owner: data-product-owner

depots:
  - name: {name}-bigquery
    type: bigquery

scanners:
  - name: {name}-scanner
    depot: {name}-bigquery
    include_pattern: "sandbox.*"

# source_type: snowflake | postgres | s3 | bigquery | other
sources:
  - entity: customer
    source_type: bigquery
  - entity: orders
    source_type: postgres

consumption_layer: {name}-analytics

# Leave empty to model every source entity.
semantic_entities: []
"""

# ---------------------------------------------------------------------------
# Lens deployment (semantic model)
# ---------------------------------------------------------------------------

LENS_DEPLOYMENT_TEMPLATE = """\
version: v1alpha
name: {name}
type: lens
tags:
  - lens
description: Lens deployment for {name}
lens:
  compute: {compute}
  secrets:
    - name: {secret}
      allKeys: true
  source:
    type: {source_type}
    name: {source_name}
    catalog: {catalog}
  repo:
    url: {repo_url}
    lensBaseDir: {base_dir}
    syncFlags:
      - --ref={sync_ref}
{services}"""

LENS_SERVICE_TEMPLATE = """\
  {service}:
{replicas}    logLevel: {log_level}
    resources:
      requests:
        cpu: {request_cpu}
        memory: {request_memory}
      limits:
        cpu: {limit_cpu}
        memory: {limit_memory}
"""

# ---------------------------------------------------------------------------
# Source-aligned data product
# ---------------------------------------------------------------------------

FLARE_INPUTS = {
    "s3": """\
              - name: {entity}_input
                dataset: dataos://thirdparty01:sandbox/{entity}.json?acl=rw
                format: json
                options:
                  multiLine: true

              - name: {entity}_input
                dataset: dataos://thirdparty01:sandbox/{entity}.csv?acl=rw
                format: csv
                options:
                  header: true
                  inferSchema: true
""",
    "postgres": """\
              - name: {entity}_input
                dataset: dataos://postgres:sandbox/{entity}?acl=rw
                options:
                  driver: org.postgresql.Driver
""",
    "bigquery": """\
              - name: {entity}_input
                dataset: dataos://bigquery:sandbox/{entity}?acl=rw
                format: Bigquery
""",
    "snowflake": """\
              - name: {entity}_input
                dataset: dataos://snowflake:public/{entity}?acl=rw
                format: snowflake
""",
    "other": """\
              - name: {entity}_input
                dataset: dataos://{depot}:sandbox/{entity}?acl=rw
""",
}

FLARE_WORKFLOW_TEMPLATE = """\
# Flare configuration for {name}

version: v1
name: wf-{entity}-flare
type: workflow
tags:
  - Tier.Gold
description: This workflow is responsible for ingesting {entity} for analysis from source into Lakehouse.

workflow:
  title: {name} Source Dataset
  dag:
    - name: {entity}-flare
      description: This workflow is responsible for ingesting {entity} for analysis from source into Lakehouse.
      title: {name} Source Dataset
      spec:
        tags:
          - Tier.Gold
        stack: flare:6.0
        compute: runnable-default
        stackSpec:
          driver:
            coreLimit: 1200m
            cores: 1
            memory: 1024m
          executor:
            coreLimit: 1200m
            cores: 1
            instances: 1
            memory: 1024m
          job:
            explain: true
            inputs:
{inputs}            logLevel: INFO
            outputs:
              - name: {entity}_final_dataset
                dataset: dataos://lakehouse:sandbox/{entity}?acl=rw
                format: Iceberg
                description: Central repository for {entity} data, used for analysis and decision-making related to {entity} operations.
                tags:
                  - Tier.Gold
                options:
                  saveMode: overwrite
                  iceberg:
                    properties:
                      write.format.default: parquet
                      write.metadata.compression-codec: gzip
                title: {name} Source Dataset
            steps:
              - sequence:
                  - name: {entity}_final_dataset
                    sql: |
                      SELECT
                        *
                      FROM
                        {entity}_input
                    functions:
                      - name: cleanse_column_names
                      - name: change_column_case
                        case: lower
                      - name: set_type
                        columns:
                          created_at: timestamp
                          updated_at: timestamp
"""

QUALITY_WORKFLOW_TEMPLATE = """\
name: wf-{entity}-quality
version: v1
type: workflow
tags:
  - Tier.Gold
description: |
  Performs quality checks on raw {entity} data to ensure completeness, consistency, and schema compliance.
workspace: public
workflow:
  # schedule:
  #   cron: '*/5 * * * *'
  #   concurrencyPolicy: Forbid
  dag:
    - name: {entity}-quality
      description: |
        Performs quality checks on raw {entity} data to ensure completeness, consistency, and schema compliance.
      title: {name} Quality Assertion
      spec:
        stack: soda+python:1.0
        logLevel: INFO
        compute: runnable-default
        resources:
          requests:
            cpu: 1000m
            memory: 250Mi
          limits:
            cpu: 1000m
            memory: 250Mi
        stackSpec:
          inputs:
            - dataset: dataos://lakehouse:sandbox/{entity}?acl=rw
              options:
                engine: minerva
                clusterName: {cluster}
              checks:
                - missing_count({entity}_id) = 0:
                    attributes:
                      category: Completeness
                      description: The {entity}_id column must not contain missing values.

                - duplicate_count({entity}_id) = 0:
                    attributes:
                      category: Uniqueness
                      description: The {entity}_id column must not contain duplicate values.

                - freshness(created_at) < 730d:
                    attributes:
                      category: Freshness

                - schema:
                    name: Confirm that required columns are present
                    warn:
                      when required column missing: [{entity}_id]
                    fail:
                      when required column missing:
                        - {entity}_id
                    attributes:
                      category: Schema
              profile:
                columns:
                  - "*"
"""

SOURCE_SCANNER_TEMPLATE = """\
version: v1
name: wf-{entity}-scanner
type: workflow
description: Scans the schema of the {entity} data product and registers it into Metis.
workflow:
  dag:
    - name: data-product-scanner
      description: Scans the schema of the {entity} data product and registers it into Metis.
      spec:
        stack: scanner:2.0
        compute: runnable-default
        runAsUser: metis
        stackSpec:
          type: data-product
          sourceConfig:
            config:
              type: DataProduct
              markDeletedDataProducts: true
              dataProductFilterPattern:
                includes:
                  - {entity}-dp
"""

BUNDLE_TEMPLATE = """\
name: {entity}-bundle
version: v1beta
type: bundle
tags:
  - Tier.Gold
description: Deploys the {alignment}-aligned resources of the {entity} data product.
layer: "user"
bundle:
  resources:
    - id: {entity}-pipeline
      file: {resource_file}
      workspace: public
"""

SOURCE_DATA_PRODUCT_TEMPLATE = """\
name: {entity}-dp
version: v1beta
type: data
description: |
  {entity} delivers structured, time-stamped data that reveals key operational signals, enabling observability and data-driven optimization.
tags:
  - DPUsecase.{name}
  - DPTier.Source Aligned
purpose: |
  Converts raw {entity} records into trusted, analytics-ready data for monitoring and diagnostics.
v1beta:
  data:
    meta:
      title: {entity}
    collaborators:
      - name: {owner}
        description: owner
    resource:
      refType: dataos
      ref: bundle:v1beta:{entity}-bundle
    inputs:
      - refType: depot
        ref: {input_ref}
    outputs:
      - refType: dataos
        ref: dataset:lakehouse:sandbox:{entity}
"""

PIPELINE_TEMPLATE = """\
version: v1
name: wf-{entity}-pipeline
type: workflow
tags:
  - Tier.Gold
  - Domain.{entity}
description: The "wf-{entity}-pipeline" ingests {entity} data and runs its quality checks.
workflow:
  # schedule:
  #   cron: '0 2 * * 6'
  #   concurrencyPolicy: Forbid
  title: {entity} Pipeline
  dag:
    - name: {entity}-ingestion
      file: {entity}/build/data-processing/config-{entity}-flare.yaml
      retry:
        count: 2
        strategy: "OnFailure"

    - name: {entity}-quality
      file: {entity}/build/quality/config-{entity}-quality.yaml
      retry:
        count: 2
        strategy: "OnFailure"
      dependencies:
        - {entity}-ingestion
"""

# ---------------------------------------------------------------------------
# Observability (shared by both alignments)
# ---------------------------------------------------------------------------

WORKFLOW_FAILED_MONITOR_TEMPLATE = """\
name: {alignment}-workflow-failed-monitor
version: v1alpha
type: monitor
tags:
  - dataos:type:resource
  - {alignment}-workflow-failed-monitor
description: The {alignment}-aligned workflow for {entity} has failed. Please refer to the logs for additional information.
layer: user
monitor:
  schedule: '*/1 * * * *'
  type: report_monitor
  report:
    source:
      dataOsInstance:
        path: /collated/api/v1/reports/resources/runtime?id=workflow:v1:%25:public
    conditions:
      - valueComparison:
          observationType: workflow-runs
          valueJqFilter: '.value[] | {{completed: .completed, phase: .phase}} | select (.completed | fromdateiso8601 > (now-600)) | .phase'
          operator: equals
          value: failed
  incident:
    name: {alignment}-workflowfailed
    severity: high
    incident_type: {alignment}-workflowruntimefailure
"""

QUALITY_FAILED_MONITOR_TEMPLATE = """\
name: {alignment}-quality-checks-failed-monitor
version: v1alpha
type: monitor
tags:
  - dataos:type:resource
  - dataos:layer:user
description: A recent {alignment} data quality check for {entity} has failed and needs attention.
layer: user
monitor:
  schedule: '*/30 * * * *'
  type: equation_monitor
  equation:
    leftExpression:
      queryCoefficient: 1
      queryConstant: 0
      query:
        type: trino
        cluster: {cluster}
        ql: |
          WITH cte AS (
            SELECT
              CASE
                WHEN check_outcome = 'fail' THEN 0
                ELSE NULL
              END AS result,
              timestamp
            FROM
              icebase.sys01.soda_quality_checks
            WHERE
              collection = '{entity}_{alignment}'
              AND dataset = '{entity}'
              AND from_iso8601_timestamp(timestamp) >= (CURRENT_TIMESTAMP - INTERVAL '30' MINUTE)
          )
          SELECT
            DISTINCT result
          FROM
            cte
          WHERE
            result IS NOT NULL
    rightExpression:
      queryCoefficient: 1
      queryConstant: 0
    operator: equals
  incident:
    name: {alignment}-soda-check-fail
    severity: high
    incident_type: {alignment}-soda-quality
"""

WORKFLOW_FAILED_PAGER_TEMPLATE = """\
name: {alignment}-workflow-failed-pager
version: v1alpha
type: pager
tags:
  - dataos:type:resource
  - {alignment}-workflow-failed-pager
description: Sends a Microsoft Teams alert when the {alignment}-aligned workflow for {entity} fails.
workspace: public
pager:
  conditions:
    - valueJqFilter: .properties.name
      operator: equals
      value: {alignment}-workflowfailed
    - valueJqFilter: .properties.incident_type
      operator: equals
      value: {alignment}-workflowruntimefailure
    - valueJqFilter: .properties.severity
      operator: equals
      value: high
  output:
    webHook:
      url: ${{TEAMS_WEBHOOK_URL}}
      verb: post
      headers:
        'content-type': 'application/json'
      bodyTemplate: |
          {{
            "@type": "MessageCard",
            "summary": "{title} Workflow has Failed - {entity}",
            "themeColor": "0076D7",
            "sections": [
              {{
                "activityTitle": "Dear Team,",
                "activitySubtitle": "The {alignment}-aligned workflow for {entity} did not complete as expected.",
                "facts": [
                  {{ "name": "Failure Time:", "value": "{{{{ .CreateTime }}}}" }},
                  {{ "name": "Severity:", "value": "{{{{ .Properties.severity }}}}" }},
                  {{ "name": "Data Product:", "value": "{entity}" }}
                ]
              }}
            ]
          }}
"""

# ---------------------------------------------------------------------------
# Consumer-aligned data product
# ---------------------------------------------------------------------------

CONSUMER_DATA_PRODUCT_TEMPLATE = """\
name: {entity}-dp
version: v1beta
type: data
description: |
  {entity} consumer-aligned data product delivers business-ready analytics and insights.
tags:
  - DPUsecase.Business Intelligence
  - DPTier.Consumer Aligned
  - DPDomain.{name}
purpose: |
  Provides clean, aggregated, business-ready data for reporting, analytics, and operational dashboards.
v1beta:
  data:
    meta:
      title: {entity} Consumer Analytics
    collaborators:
      - name: {owner}
        description: owner
    resource:
      refType: dataos
      ref: bundle:v1beta:{entity}-bundle
    inputs:
{inputs}    outputs:
      - refType: dataos
        ref: dataset:lakehouse:analytics:{entity}_consumer
"""

CONSUMER_INPUT_TEMPLATE = """\
      - refType: dataos
        ref: dataset:lakehouse:sandbox:{entity}
"""

CONSUMER_SCANNER_TEMPLATE = """\
name: wf-{entity}-data-product-scanner
version: v1
type: workflow
description: |
  Scans and registers {entity} consumer-aligned data products and semantic models into the data catalog.
workflow:
  dag:
    - name: {entity}-data-product-scanner
      description: |
        Scans the semantic model for {entity} and registers it into the data catalog.
      title: {entity} Data Product Scanner
      spec:
        stack: scanner:2.0
        compute: runnable-default
        runAsUser: metis
        stackSpec:
          type: semantic-model
          sourceConfig:
            config:
              type: SemanticModel
              markDeletedDataProducts: true
              dataProductFilterPattern:
                includes:
                  - {entity}
"""

ACTIVATION_README_TEMPLATE = """\
# {title} for {entity}

This directory contains {what} for {purpose} {entity} data.

## Structure
{structure}
## Usage
{usage}
"""

ACTIVATION_LAYERS = {
    "custom-application": {
        "title": "Custom Application",
        "what": "custom applications",
        "purpose": "consuming",
        "structure": [
            ("applications/", "Custom application code"),
            ("config/", "Application configuration files"),
            ("docs/", "Application documentation"),
        ],
        "usage": "Custom applications can be developed here to consume the {entity} data product through various interfaces.",
    },
    "data-apis": {
        "title": "Data APIs",
        "what": "API definitions",
        "purpose": "accessing",
        "structure": [
            ("openapi/", "OpenAPI specifications"),
            ("graphql/", "GraphQL schemas"),
            ("rest/", "REST API definitions"),
        ],
        "usage": "Data APIs provide programmatic access to {entity} data through standardized interfaces.",
    },
    "notebook": {
        "title": "Notebooks",
        "what": "Jupyter notebooks",
        "purpose": "exploring and analyzing",
        "structure": [
            ("exploration/", "Data exploration notebooks"),
            ("analysis/", "Data analysis notebooks"),
            ("templates/", "Notebook templates"),
        ],
        "usage": "Notebooks provide interactive environments for data scientists and analysts to work with {entity} data.",
    },
}

ACCESS_CONTROL_TEMPLATE = """\
version: v1
name: {entity}-masking-policy
type: policy
layer: user
description: "Data policy to apply hashing for personally identifiable information (PII) columns"
owner:
policy:
  data:
    type: mask
    priority: 70
    selector:
      user:
        match: any
        tags:
          - "roles:id:user-masking-access"
      column:
        tags:
          - "PII.Masking"
    mask:
      operator: hash
      hash:
        algo: sha256

---

version: v1
name: {entity}-piireader
type: policy
layer: user
description: "Data policy enabling controlled read access to PII columns"
owner:
policy:
  data:
    type: mask
    priority: 65
    selector:
      user:
        match: any
        tags:
          - roles:id:pii-reader
      column:
        tags:
          - "PII.Masking"
    mask:
      operator: pass_through
"""

# ---------------------------------------------------------------------------
# Infrastructure (instance secret, depots, cluster, depot scanners)
# ---------------------------------------------------------------------------

INSTANCE_SECRET_TEMPLATE = """\
name: {depot}-r
version: v1
type: instance-secret
description: Read credentials for the {depot} depot ({depot_type}).
layer: user
instance-secret:
  type: key-value-properties
  acl: r
  data:
    username: ${{{env_prefix}_USERNAME}}
    password: ${{{env_prefix}_PASSWORD}}
"""

DEPOT_TEMPLATE = """\
name: {depot}
version: v2alpha
type: depot
tags:
  - {depot_type}
layer: user
depot:
  type: {depot_type}
  description: {depot_type} depot for {name}
  external: true
  secrets:
    - name: {depot}-r
      allkeys: true
"""

CLUSTER_TEMPLATE = """\
version: v1
name: {cluster}
type: cluster
description: Query cluster for {name}
tags:
  - {name}
cluster:
  compute: query-default
  type: minerva
  minerva:
    replicas: 1
    resources:
      requests:
        cpu: 2000m
        memory: 2Gi
      limits:
        cpu: 4000m
        memory: 8Gi
    depots:
{depots}"""

CLUSTER_DEPOT_TEMPLATE = """\
      - address: dataos://{depot}
"""

DEPOT_SCANNER_TEMPLATE = """\
version: v1
name: wf-{scanner}
type: workflow
description: Scans {depot} and registers its metadata into Metis.
workflow:
  dag:
    - name: {scanner}
      spec:
        stack: scanner:2.0
        compute: runnable-default
        stackSpec:
          depot: dataos://{depot}
          sourceConfig:
            config:
              schemaFilterPattern:
                includes:
                  - "{include_pattern}"
"""

# ---------------------------------------------------------------------------
# Template catalog (GET /api/templates, `dpgen templates`)
# ---------------------------------------------------------------------------

TEMPLATE_CATALOG = {
    "config": {
        "description": "Project spec defining source entities, infrastructure, and the consumption layer",
        "example": {
            "project_name": "retail",
            "cluster_name": "retail-cluster",
            "depots": [{"name": "retail-bigquery", "type": "bigquery"}],
            "scanners": [{"name": "retail-scanner", "depot": "retail-bigquery", "include_pattern": "sandbox.*"}],
            "sources": [{"entity": "customer", "source_type": "bigquery"}],
            "consumption_layer": "retail-analytics",
            "semantic_entities": [],
        },
    },
    "sodp": {
        "description": "Source-aligned data product template",
        "example": {
            "name": "${entity}-dp",
            "version": "v1beta",
            "type": "data",
            "description": "Data product description",
            "tags": ["DPUsecase.${name}", "DPTier.Source Aligned"],
            "purpose": "Converts raw records into trusted, analytics-ready data",
        },
    },
    "model": {
        "description": "Semantic model table with dimensions and measures",
        "example": {
            "tables": [
                {
                    "name": "${entity}",
                    "sql": "{{ load_sql('${entity}') }}",
                    "description": "Comprehensive ${entity} data for business analytics",
                    "data_source": "icebase",
                    "public": True,
                    "dimensions": [
                        {
                            "name": "${entity}_id",
                            "description": "Primary business identifier",
                            "type": "string",
                            "sql": "${entity}_id",
                            "primary_key": True,
                        },
                    ],
                    "measures": [
                        {
                            "name": "total_${entity}",
                            "sql": "${entity}_id",
                            "type": "count",
                            "description": "Total count of ${entity} records",
                        },
                    ],
                },
            ],
        },
    },
}
