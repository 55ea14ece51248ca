"""Shared fixtures: an in-memory stand-in for the BigQuery sink.

The DirectRunner executes bundles in this process, so the module-level
TABLES dict is visible to both the pipeline and the test.
"""

from typing import Any, Callable, Dict, List, Optional

import apache_beam as beam
import pytest

from tornadoes.io import FAILED_INSERTS, SUCCESSFUL_LOADS
from utils.schemas import TornadoCount

TABLES: Dict[str, List[Dict[str, Any]]] = {}


class _ReplaceTableFn(beam.DoFn):
    def __init__(self, table: str, reject: Optional[Callable[[Dict[str, Any]], bool]]):
        self.table = table
        self.reject = reject

    def process(self, counts: List[TornadoCount]):
        accepted = []
        for count in counts:
            row = count.to_table_row()
            if self.reject is not None and self.reject(row):
                yield beam.pvalue.TaggedOutput(FAILED_INSERTS, row)
            else:
                accepted.append(row)

        # Truncate-and-replace, creating the table if needed
        TABLES[self.table] = accepted
        if accepted:
            yield self.table


class InMemoryTableSink(beam.PTransform):
    """Writes every TornadoCount to TABLES[table] in one replace operation.

    `reject` marks table rows that the sink refuses, like BigQuery rejecting
    a streaming insert.
    """

    def __init__(self, table: str, reject: Optional[Callable[[Dict[str, Any]], bool]] = None):
        super().__init__()
        self.table = table
        self.reject = reject

    def expand(self, counts):
        outputs = (
            counts
            | "CollectCounts" >> beam.combiners.ToList()
            | "ReplaceTable" >> beam.ParDo(_ReplaceTableFn(self.table, self.reject)).with_outputs(
                FAILED_INSERTS, main=SUCCESSFUL_LOADS
            )
        )
        return {
            SUCCESSFUL_LOADS: outputs[SUCCESSFUL_LOADS],
            FAILED_INSERTS: outputs[FAILED_INSERTS],
        }


@pytest.fixture
def tables():
    TABLES.clear()
    yield TABLES
    TABLES.clear()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty directory with no GCP settings in the environment."""
    for name in ("GCP_PROJECT_ID", "GCP_REGION", "GCS_BUCKET", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)
    return tmp_path
