"""Pipeline options and configuration resolution.

`--project`, `--runner`, `--region`, `--temp_location` and `--extra_packages`
are Beam's own standard options; `TornadoesOptions` adds the flags specific
to this job.

Remote runners import `tornadoes` and `utils` on their workers, so those
packages must be staged:

    python -m build --sdist
    python -m tornadoes --runner=DataflowRunner \\
        --extra_packages=dist/tornado_counts-0.1.0.tar.gz ...
"""

from __future__ import annotations

import logging

from apache_beam.options.pipeline_options import (
    GoogleCloudOptions,
    PipelineOptions,
    SetupOptions,
    StandardOptions,
)

from utils.bq import TableSpec
from utils.config import Settings

logger = logging.getLogger(__name__)

FILE_LOADS = "FILE_LOADS"
STREAMING_INSERTS = "STREAMING_INSERTS"
WRITE_METHODS = (FILE_LOADS, STREAMING_INSERTS)

# Runners whose workers do not share this process's installed packages
REMOTE_RUNNERS = {"dataflow"}


class ConfigurationError(ValueError):
    """Invalid or incomplete pipeline configuration."""


class TornadoesOptions(PipelineOptions):
    @classmethod
    def _add_argparse_args(cls, parser):
        parser.add_argument(
            "--output",
            default=None,
            help="Output BigQuery table: PROJECT:DATASET.TABLE or DATASET.TABLE (required)",
        )
        parser.add_argument(
            "--write_method",
            default=FILE_LOADS,
            choices=WRITE_METHODS,
            help="How rows are written to BigQuery (default: FILE_LOADS)",
        )
        parser.add_argument(
            "--verify_output",
            action="store_true",
            default=False,
            help="Log the output table's row count after a successful run",
        )


def _is_remote_runner(runner: str | None) -> bool:
    name = (runner or "").lower()
    if name.endswith("runner"):
        name = name[: -len("runner")]
    return name in REMOTE_RUNNERS


def resolve_options(
    options: PipelineOptions,
    settings: Settings,
    *,
    needs_gcs_temp: bool = True,
) -> TableSpec:
    """Fill environment defaults into `options` and validate them.

    Command-line values win; `settings` only fills what was left unset.

    Args:
        options: Parsed pipeline options, updated in place
        settings: Environment defaults
        needs_gcs_temp: Whether BigQuery is read or batch-loaded, both of
            which stage files under the GCS temp location

    Returns:
        The parsed output table.

    Raises:
        ConfigurationError: If `--output` is missing or malformed, no project
            is known for it, a required GCS temp location is missing, or a
            remote runner has no packages to stage.
    """
    gcloud = options.view_as(GoogleCloudOptions)
    if not gcloud.project and settings.gcp_project_id:
        gcloud.project = settings.gcp_project_id
    if not gcloud.region and settings.gcp_region:
        gcloud.region = settings.gcp_region
    if not gcloud.temp_location and settings.temp_location:
        gcloud.temp_location = settings.temp_location

    output = options.view_as(TornadoesOptions).output
    if not output:
        raise ConfigurationError("--output is required (PROJECT:DATASET.TABLE)")

    try:
        table = TableSpec.parse(output, default_project=gcloud.project)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    if needs_gcs_temp and not (gcloud.temp_location or "").startswith("gs://"):
        raise ConfigurationError(
            "--temp_location=gs://BUCKET/PATH (or GCS_BUCKET) is required to read "
            f"and load BigQuery data, got {gcloud.temp_location!r}"
        )

    runner = options.view_as(StandardOptions).runner
    setup = options.view_as(SetupOptions)
    if _is_remote_runner(runner) and not (setup.setup_file or setup.extra_packages):
        raise ConfigurationError(
            f"{runner} workers need this project's packages: build them with "
            "`python -m build --sdist` and pass --extra_packages=dist/<sdist>.tar.gz"
        )

    logger.debug(
        f"[Options] runner={runner} project={gcloud.project} region={gcloud.region} "
        f"temp_location={gcloud.temp_location} output={table}"
    )
    return table
