"""BigQuery helpers for table references and dataset management.

This module provides:
- Table spec parsing (`PROJECT:DATASET.TABLE` and friends)
- Dataset creation (Beam's CREATE_IF_NEEDED creates tables, not datasets)
- Output table reset (create if missing, truncate otherwise)
- Table metadata lookup for post-run inspection

All operations are idempotent and use retry logic for reliability.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from utils.retry import RetryPolicy, retry_call


logger = logging.getLogger(__name__)

ADMIN_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay_seconds=1.0)

# project ids may contain ':' and '.' (domain-scoped projects), datasets and tables may not
_TABLE_SPEC_RE = re.compile(
    r"^(?:(?P<project>[A-Za-z0-9\-_.:]+?)[:.])?(?P<dataset>[A-Za-z0-9_]+)\.(?P<table>[A-Za-z0-9_\-$]+)$"
)


# =============================================================================
# Table References
# =============================================================================

@dataclass(frozen=True, slots=True)
class TableSpec:
    """Fully qualified BigQuery table reference."""

    project: str
    dataset: str
    table: str

    @staticmethod
    def parse(text: str, default_project: Optional[str] = None) -> "TableSpec":
        """Parse `PROJECT:DATASET.TABLE`, `PROJECT.DATASET.TABLE` or `DATASET.TABLE`.

        Args:
            text: Table reference as given on the command line
            default_project: Project used when `text` names none

        Raises:
            ValueError: If `text` is malformed or no project can be determined
        """
        match = _TABLE_SPEC_RE.match((text or "").strip())
        if not match:
            raise ValueError(
                f"Invalid table spec {text!r}: expected PROJECT:DATASET.TABLE or DATASET.TABLE"
            )

        project = match.group("project") or default_project
        if not project:
            raise ValueError(
                f"Table spec {text!r} names no project and no default project is configured"
            )

        return TableSpec(
            project=project,
            dataset=match.group("dataset"),
            table=match.group("table"),
        )

    @property
    def table_id(self) -> str:
        """Standard SQL form used by the BigQuery client: PROJECT.DATASET.TABLE."""
        return f"{self.project}.{self.dataset}.{self.table}"

    def __str__(self) -> str:
        return f"{self.project}:{self.dataset}.{self.table}"


# =============================================================================
# Client Management
# =============================================================================

def bq_client(project: str) -> bigquery.Client:
    """Create a BigQuery client for the given project."""
    return bigquery.Client(project=project)


# =============================================================================
# Datasets and Tables
# =============================================================================

def ensure_dataset(
    client: bigquery.Client,
    dataset_id: str,
    location: str = "US",
    description: Optional[str] = None,
) -> bigquery.Dataset:
    """Ensure dataset exists, create if missing (idempotent).

    Args:
        client: BigQuery client instance
        dataset_id: Dataset ID (not full path, just the ID)
        location: Dataset location, used only when creating
        description: Optional dataset description

    Returns:
        Dataset reference

    Raises:
        Exception: If dataset lookup/creation fails after retries
    """
    dataset_ref = f"{client.project}.{dataset_id}"

    def _ensure():
        try:
            dataset = client.get_dataset(dataset_ref)
            logger.info(f"[BQ] Dataset already exists: {dataset_ref}")
            return dataset

        except NotFound:
            logger.info(f"[BQ] Creating dataset: {dataset_ref} in {location}")

            dataset = bigquery.Dataset(dataset_ref)
            dataset.location = location

            if description:
                dataset.description = description

            dataset = client.create_dataset(dataset, exists_ok=True)
            logger.info(f"[BQ] ✓ Dataset created successfully: {dataset_ref}")
            return dataset

    return retry_call(
        _ensure,
        policy=ADMIN_RETRY_POLICY,
        on_retry=lambda attempt, exc: logger.warning(
            f"[BQ] Retry {attempt} for ensure_dataset({dataset_id}): {exc}"
        ),
    )


def describe_table(
    client: bigquery.Client,
    table: TableSpec,
) -> Optional[bigquery.Table]:
    """Retrieve table metadata (schema, row count).

    Returns:
        Table metadata, or None if the table doesn't exist
    """

    def _get():
        try:
            found = client.get_table(table.table_id)
            logger.debug(f"[BQ] Retrieved metadata for: {table.table_id}")
            return found
        except NotFound:
            logger.warning(f"[BQ] Table not found: {table.table_id}")
            return None

    return retry_call(
        _get,
        policy=ADMIN_RETRY_POLICY,
        on_retry=lambda attempt, exc: logger.warning(
            f"[BQ] Retry {attempt} for describe_table({table}): {exc}"
        ),
    )


def reset_table(
    client: bigquery.Client,
    table: TableSpec,
    schema: List[bigquery.SchemaField],
) -> bigquery.Table:
    """Leave `table` existing and empty (idempotent).

    Creates the table with `schema` if missing, otherwise deletes all of its
    rows with TRUNCATE TABLE, which keeps the table and its schema.

    Raises:
        Exception: If the table cannot be created or truncated after retries
    """

    def _reset():
        try:
            existing = client.get_table(table.table_id)
        except NotFound:
            logger.info(f"[BQ] Creating table: {table.table_id} ({len(schema)} fields)")
            created = client.create_table(bigquery.Table(table.table_id, schema=schema), exists_ok=True)
            logger.info(f"[BQ] ✓ Table created successfully: {table.table_id}")
            return created

        logger.info(f"[BQ] Truncating table: {table.table_id}")
        client.query(f"TRUNCATE TABLE `{table.table_id}`").result()
        logger.info(f"[BQ] ✓ Table truncated: {table.table_id}")
        return existing

    return retry_call(
        _reset,
        policy=ADMIN_RETRY_POLICY,
        on_retry=lambda attempt, exc: logger.warning(
            f"[BQ] Retry {attempt} for reset_table({table}): {exc}"
        ),
    )
