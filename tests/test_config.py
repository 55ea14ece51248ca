"""Tests for settings, logging setup and option resolution."""

import logging

import pytest
from apache_beam.options.pipeline_options import GoogleCloudOptions, PipelineOptions

from tornadoes.options import ConfigurationError, TornadoesOptions, resolve_options
from utils.config import Settings
from utils.logging import configure_logging, resolve_log_level


# =============================================================================
# Settings
# =============================================================================

def test_settings_env_vars_override_env_file(clean_env, monkeypatch):
    monkeypatch.setenv("GCP_PROJECT_ID", "env-project")
    (clean_env / ".env").write_text("GCP_PROJECT_ID=file-project\n")

    assert Settings.load().gcp_project_id == "env-project"


def test_settings_read_from_env_vars(clean_env, monkeypatch):
    monkeypatch.setenv("GCP_PROJECT_ID", " weather-project ")
    monkeypatch.setenv("GCP_REGION", "us-central1")
    monkeypatch.setenv("GCS_BUCKET", "gs://weather-bucket/")

    settings = Settings.load()

    assert settings.gcp_project_id == "weather-project"
    assert settings.gcp_region == "us-central1"
    assert settings.gcs_bucket == "weather-bucket"
    assert settings.temp_location == "gs://weather-bucket/tmp"


def test_settings_read_from_env_file(clean_env):
    # clean_env restores the variables the file sets
    env_file = clean_env / "pipeline.env"
    env_file.write_text("GCP_PROJECT_ID=file-project\nGCP_REGION=europe-west1\n")

    settings = Settings.load(env_file=str(env_file))

    assert settings.gcp_project_id == "file-project"
    assert settings.gcp_region == "europe-west1"


def test_settings_default_to_none(clean_env):
    settings = Settings.load()

    assert settings == Settings()
    assert settings.temp_location is None


# =============================================================================
# Logging
# =============================================================================

def test_configure_logging_writes_log_file(tmp_path):
    logger = configure_logging(service_name="tornadoes_test", level="debug", log_dir=str(tmp_path))
    logger.info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_files = list(tmp_path.glob("tornadoes_test_*.log"))
    assert len(log_files) == 1
    assert "(INFO) | tornadoes_test | hello" in log_files[0].read_text(encoding="utf-8")
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_keeps_recent_files(tmp_path):
    for i in range(5):
        (tmp_path / f"tornadoes_test_2020010{i}_000000.log").write_text("old")

    configure_logging(service_name="tornadoes_test", log_dir=str(tmp_path), max_log_files=3)

    assert len(list(tmp_path.glob("tornadoes_test_*.log"))) == 3


def test_resolve_log_level(clean_env, monkeypatch):
    assert resolve_log_level() == logging.INFO
    assert resolve_log_level("warning") == logging.WARNING
    assert resolve_log_level("chatty") == logging.INFO

    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    assert resolve_log_level() == logging.DEBUG


# =============================================================================
# resolve_options
# =============================================================================

def test_resolve_options_uses_command_line():
    options = PipelineOptions([
        "--output=cli-project:weather.counts",
        "--project=cli-project",
        "--region=us-east1",
        "--temp_location=gs://cli-bucket/tmp",
    ])

    table = resolve_options(
        options,
        Settings(gcp_project_id="env-project", gcp_region="asia-east1", gcs_bucket="env-bucket"),
    )

    gcloud = options.view_as(GoogleCloudOptions)
    assert str(table) == "cli-project:weather.counts"
    assert gcloud.project == "cli-project"
    assert gcloud.region == "us-east1"
    assert gcloud.temp_location == "gs://cli-bucket/tmp"


def test_resolve_options_fills_environment_defaults():
    options = PipelineOptions(["--output=weather.counts"])

    table = resolve_options(
        options,
        Settings(gcp_project_id="env-project", gcp_region="asia-east1", gcs_bucket="bucket"),
    )

    gcloud = options.view_as(GoogleCloudOptions)
    assert table.project == "env-project"
    assert gcloud.project == "env-project"
    assert gcloud.region == "asia-east1"
    assert gcloud.temp_location == "gs://bucket/tmp"


def test_resolve_options_default_flags():
    options = PipelineOptions(["--output=p:d.t"])
    tornado_options = options.view_as(TornadoesOptions)

    assert tornado_options.write_method == "FILE_LOADS"
    assert tornado_options.verify_output is False


def test_resolve_options_temp_location_optional_without_bigquery_io():
    table = resolve_options(PipelineOptions(["--output=p:d.t"]), Settings(), needs_gcs_temp=False)

    assert str(table) == "p:d.t"


def test_resolve_options_dataflow_with_staged_packages():
    options = PipelineOptions([
        "--output=p:d.t",
        "--runner=DataflowRunner",
        "--temp_location=gs://bucket/tmp",
        "--extra_packages=dist/tornado_counts-0.1.0.tar.gz",
    ])

    assert str(resolve_options(options, Settings())) == "p:d.t"


@pytest.mark.parametrize(
    "argv, message",
    [
        ([], "--output is required"),
        (["--output=counts"], "Invalid table spec"),
        (["--output=weather.counts"], "no default project"),
        (["--output=p:d.t"], "--temp_location"),
        (["--output=p:d.t", "--temp_location=/tmp/beam"], "--temp_location"),
        (
            ["--output=p:d.t", "--temp_location=gs://bucket/tmp", "--runner=DataflowRunner"],
            "--extra_packages",
        ),
        (
            ["--output=p:d.t", "--temp_location=gs://bucket/tmp", "--runner=dataflow"],
            "--extra_packages",
        ),
    ],
)
def test_resolve_options_errors(argv, message):
    with pytest.raises(ConfigurationError, match=message):
        resolve_options(PipelineOptions(argv), Settings())
