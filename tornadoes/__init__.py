"""Tornado counts pipeline package.

Counts tornado observations per month in the BigQuery GSOD weather sample
and writes the counts to a BigQuery table.

Modules:
- transforms: filter and per-month count transforms
- io: BigQuery source and truncate-and-replace sink
- options: command-line options and their validation
- pipeline: pipeline assembly and the CLI entry point

Usage:
    from tornadoes import build_pipeline, run

    # CLI usage:
    # python -m tornadoes --output=my-project:weather.tornado_counts
"""

from tornadoes.pipeline import build_pipeline, main, run

__all__ = [
    "build_pipeline",
    "main",
    "run",
]
