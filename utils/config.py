"""Configuration loader.

Loads environment defaults for the pipeline from environment variables and an
optional local `.env`. Command-line flags always take precedence over these.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True, slots=True)
class Settings:
    """Environment defaults for the tornado counts pipeline."""

    gcp_project_id: Optional[str] = None
    gcp_region: Optional[str] = None
    gcs_bucket: Optional[str] = None

    @property
    def temp_location(self) -> Optional[str]:
        """GCS staging path derived from the bucket, if one is configured."""
        if not self.gcs_bucket:
            return None
        return f"gs://{self.gcs_bucket}/tmp"

    @staticmethod
    def load(*, env_file: str = ".env") -> "Settings":
        """Load settings from environment; unset or blank values become None."""
        load_dotenv(env_file, override=False)

        gcp_project_id = os.getenv("GCP_PROJECT_ID", "").strip()
        gcp_region = os.getenv("GCP_REGION", "").strip()
        gcs_bucket = os.getenv("GCS_BUCKET", "").strip()

        # Accept both "bucket" and "gs://bucket/"
        if gcs_bucket.startswith("gs://"):
            gcs_bucket = gcs_bucket[len("gs://"):]
        gcs_bucket = gcs_bucket.strip("/")

        return Settings(
            gcp_project_id=gcp_project_id or None,
            gcp_region=gcp_region or None,
            gcs_bucket=gcs_bucket or None,
        )
