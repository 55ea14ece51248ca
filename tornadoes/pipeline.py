"""Tornado counts pipeline: BigQuery GSOD sample → tornadoes per month → BigQuery.

Stages:
1. Extract: run the fixed GSOD query
2. Filter + Project: keep the month of rows that recorded a tornado
3. Aggregate: count rows per month
4. Map: build TornadoCount records
5. Load: replace the output table contents (emptied before submission,
   so an empty result still leaves an empty table)

The load step exposes two independent side channels that are logged after
the write: loaded tables, and the number of failed inserts.

Usage:
    python -m tornadoes --project=[PROJECT] --runner=DataflowRunner \\
        --region=[REGION] --temp_location=gs://[BUCKET]/tmp \\
        --extra_packages=dist/tornado_counts-0.1.0.tar.gz \\
        --output=[PROJECT]:[DATASET].[TABLE]
"""

from __future__ import annotations

import logging
import sys
from typing import List, NamedTuple, Optional

import apache_beam as beam
from apache_beam.options.pipeline_options import GoogleCloudOptions, PipelineOptions
from apache_beam.runners.runner import PipelineState

from tornadoes.io import FAILED_INSERTS, SUCCESSFUL_LOADS, ReadTornadoRows, WriteTornadoCounts
from tornadoes.options import FILE_LOADS, ConfigurationError, TornadoesOptions, resolve_options
from tornadoes.transforms import CountTornadoes
from utils.bq import TableSpec, bq_client, describe_table, ensure_dataset, reset_table
from utils.bq_schemas import tornado_counts_schema
from utils.config import Settings
from utils.logging import configure_logging
from utils.schemas import TORNADO_QUERY, TornadoRow

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


class PipelineOutputs(NamedTuple):
    """PCollections of a built pipeline, for inspection by callers."""

    tornado_counts: beam.PCollection
    loaded_tables: beam.PCollection
    failed_insert_count: beam.PCollection


def log_loaded_table(table_spec: str) -> str:
    logger.info(f"Loaded table: {table_spec}")
    return table_spec


def log_failed_inserts(count: int) -> int:
    # Informational: rejected rows never fail the run
    logger.info(f"Failed inserts: {count}")
    return count


def build_pipeline(
    pipeline: beam.Pipeline,
    output_table: TableSpec,
    *,
    write_method: str = FILE_LOADS,
    source: Optional[beam.PTransform] = None,
    sink: Optional[beam.PTransform] = None,
) -> PipelineOutputs:
    """Attach the tornado counts dataflow to `pipeline`.

    Args:
        pipeline: Pipeline to build on (not run here)
        output_table: Destination table
        write_method: BigQuery write method of the default sink
        source: Root transform emitting BigQuery row dicts
            (default: the GSOD query)
        sink: Transform consuming TornadoCount records and returning the
            load side channels (default: BigQuery truncate-and-replace)
    """
    source = source if source is not None else ReadTornadoRows()
    sink = sink if sink is not None else WriteTornadoCounts(output_table, method=write_method)

    tornado_counts = (
        pipeline
        | "ReadTornadoRows" >> source
        | "ToTornadoRow" >> beam.Map(TornadoRow.from_table_row)
        | "CountTornadoes" >> CountTornadoes()
    )

    load = tornado_counts | "WriteTornadoCounts" >> sink

    loaded_tables = load[SUCCESSFUL_LOADS] | "LogLoadedTable" >> beam.Map(log_loaded_table)

    failed_insert_count = (
        load[FAILED_INSERTS]
        | "CountFailedInserts" >> beam.combiners.Count.Globally()
        | "LogFailedInserts" >> beam.Map(log_failed_inserts)
    )

    return PipelineOutputs(
        tornado_counts=tornado_counts,
        loaded_tables=loaded_tables,
        failed_insert_count=failed_insert_count,
    )


def _verify_output(output_table: TableSpec) -> None:
    """Log the destination's row count and any schema drift.

    Inspection only: a failed lookup is logged, never raised, since the
    pipeline itself already finished.
    """
    try:
        table = describe_table(bq_client(output_table.project), output_table)
    except Exception as e:
        logger.warning(f"[Tornadoes] Could not inspect output table {output_table}: {e}")
        return

    if table is None:
        logger.warning(f"[Tornadoes] Output table {output_table} not found after run")
        return

    logger.info(f"[Tornadoes] Output table {output_table} holds {table.num_rows} rows")

    expected = [field.name for field in tornado_counts_schema()]
    actual = [field.name for field in table.schema]
    if actual != expected:
        logger.warning(f"[Tornadoes] Output schema {actual} differs from expected {expected}")


def run(
    argv: Optional[List[str]] = None,
    *,
    source: Optional[beam.PTransform] = None,
    sink: Optional[beam.PTransform] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Build, submit and wait for the pipeline.

    Configuration is validated before any data is read. With the default
    sink the output dataset is created if needed and the output table is
    created or emptied before submission, so the table ends up holding
    exactly this run's counts even when there are none.

    Returns:
        Terminal PipelineState (e.g. "DONE").

    Raises:
        ConfigurationError: On missing or invalid options
        Exception: Anything the runner or BigQuery raise on fatal failures
    """
    settings = settings if settings is not None else Settings.load()
    options = PipelineOptions(argv if argv is not None else sys.argv[1:])
    tornado_options = options.view_as(TornadoesOptions)

    # ReadFromBigQuery exports, and FILE_LOADS stages, through GCS
    needs_gcs_temp = source is None or (sink is None and tornado_options.write_method == FILE_LOADS)
    output_table = resolve_options(options, settings, needs_gcs_temp=needs_gcs_temp)

    if sink is None:
        client = bq_client(output_table.project)
        location = options.view_as(GoogleCloudOptions).region or "US"
        ensure_dataset(client, output_table.dataset, location=location)
        reset_table(client, output_table, tornado_counts_schema())

    pipeline = beam.Pipeline(options=options)
    build_pipeline(
        pipeline,
        output_table,
        write_method=tornado_options.write_method,
        source=source,
        sink=sink,
    )

    logger.info(f"[Tornadoes] Submitting pipeline: {TORNADO_QUERY!r} → {output_table}")
    result = pipeline.run()
    state = result.wait_until_finish()
    logger.info(f"[Tornadoes] Pipeline finished: {state}")

    if state == PipelineState.DONE and tornado_options.verify_output and sink is None:
        _verify_output(output_table)

    return state


def main(
    argv: Optional[List[str]] = None,
    *,
    source: Optional[beam.PTransform] = None,
    sink: Optional[beam.PTransform] = None,
) -> int:
    """Command-line entry point; returns the process exit status."""
    configure_logging(service_name="tornadoes")

    try:
        state = run(argv, source=source, sink=sink)
    except ConfigurationError as e:
        logger.error(f"[Tornadoes] Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR
    except Exception as e:
        logger.error(f"[Tornadoes] Pipeline failed: {e}", exc_info=True)
        return EXIT_FAILED

    if state != PipelineState.DONE:
        logger.error(f"[Tornadoes] Pipeline ended in state {state}")
        return EXIT_FAILED
    return EXIT_OK
