"""BigQuery schema definitions.

**RENDERED FROM FIELD TABLES**
Do NOT manually edit schemas here. Update `utils.schemas` instead.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from google.cloud import bigquery

from utils.schemas import FieldSpec, TORNADO_COUNT_FIELDS


def to_table_schema(field_specs: Sequence[FieldSpec]) -> Dict[str, List[Dict[str, Any]]]:
    """Render fields in the dict form accepted by `beam.io.WriteToBigQuery`."""
    return {
        "fields": [
            {"name": spec.name, "type": spec.bq_type, "mode": spec.mode}
            for spec in field_specs
        ]
    }


def to_schema_fields(field_specs: Sequence[FieldSpec]) -> List[bigquery.SchemaField]:
    """Render fields for the google-cloud-bigquery client."""
    return [
        bigquery.SchemaField(spec.name, spec.bq_type, mode=spec.mode)
        for spec in field_specs
    ]


def tornado_counts_table_schema() -> Dict[str, List[Dict[str, Any]]]:
    """Schema of the output table, for the Beam sink."""
    return to_table_schema(TORNADO_COUNT_FIELDS)


def tornado_counts_schema() -> List[bigquery.SchemaField]:
    """Schema of the output table, for the BigQuery client."""
    return to_schema_fields(TORNADO_COUNT_FIELDS)
