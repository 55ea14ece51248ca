"""BigQuery source and sink for the tornado counts pipeline.

A sink is any PTransform that consumes `TornadoCount` records and returns a
dict with two PCollections:

- `SUCCESSFUL_LOADS`: table specs of destinations that were loaded
- `FAILED_INSERTS`: records the sink rejected

Both are side channels: a rejected record never fails the pipeline.
"""

from __future__ import annotations

from typing import Union

import apache_beam as beam
from apache_beam.io.gcp.bigquery import BigQueryDisposition, WriteToBigQuery
from apache_beam.io.gcp.bigquery_tools import RetryStrategy

from tornadoes.options import FILE_LOADS, STREAMING_INSERTS, WRITE_METHODS
from utils.bq import TableSpec
from utils.bq_schemas import tornado_counts_table_schema
from utils.schemas import TORNADO_QUERY, TornadoCount

SUCCESSFUL_LOADS = "successful_loads"
FAILED_INSERTS = "failed_inserts"


class ReadTornadoRows(beam.PTransform):
    """Run `TORNADO_QUERY` and emit one BigQuery row dict per result row."""

    def expand(self, pbegin):
        return pbegin | "QueryGsod" >> beam.io.ReadFromBigQuery(
            query=TORNADO_QUERY,
            use_standard_sql=False,
        )


class WriteTornadoCounts(beam.PTransform):
    """Write `TornadoCount` rows to a BigQuery table.

    FILE_LOADS truncates the table in the load job itself; a failed load job
    fails the pipeline, so its failed-inserts channel is always empty.

    STREAMING_INSERTS cannot truncate, so rows are appended: the caller must
    empty the table first (`utils.bq.reset_table`). Rejected rows are
    reported without retrying them; there are no load jobs to report.

    Either method creates the table if missing. Neither starts a load when
    there are no rows, so an empty result also relies on `reset_table`.
    """

    def __init__(self, table: Union[TableSpec, str], method: str = FILE_LOADS):
        super().__init__()
        if method not in WRITE_METHODS:
            raise ValueError(f"Unsupported write method: {method}")
        self.table = str(table)
        self.method = method

    @property
    def write_disposition(self) -> str:
        if self.method == STREAMING_INSERTS:
            return BigQueryDisposition.WRITE_APPEND
        return BigQueryDisposition.WRITE_TRUNCATE

    def expand(self, counts):
        pipeline = counts.pipeline
        result = (
            counts
            | "ToTableRow" >> beam.Map(TornadoCount.to_table_row)
            | "WriteToBigQuery" >> WriteToBigQuery(
                table=self.table,
                schema=tornado_counts_table_schema(),
                write_disposition=self.write_disposition,
                create_disposition=BigQueryDisposition.CREATE_IF_NEEDED,
                method=self.method,
                insert_retry_strategy=RetryStrategy.RETRY_NEVER,
            )
        )

        if self.method == STREAMING_INSERTS:
            loaded = pipeline | "NoLoadJobs" >> beam.Create([])
            failed = result.failed_rows | "FailedRow" >> beam.MapTuple(
                lambda destination, row: row
            )
        else:
            loaded = (
                result.destination_load_jobid_pairs
                | "LoadedDestination" >> beam.MapTuple(lambda destination, job: str(destination))
                | "DistinctDestinations" >> beam.Distinct()
            )
            failed = pipeline | "NoFailedInserts" >> beam.Create([])

        return {SUCCESSFUL_LOADS: loaded, FAILED_INSERTS: failed}
