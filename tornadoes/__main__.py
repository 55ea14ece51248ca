"""Pipeline entry point.

Usage:
    python -m tornadoes --temp_location=gs://[BUCKET]/tmp \\
        --output=[PROJECT]:[DATASET].[TABLE]
    python -m build --sdist
    python -m tornadoes --project=[PROJECT] --runner=DataflowRunner \\
        --region=[REGION] --temp_location=gs://[BUCKET]/tmp \\
        --extra_packages=dist/tornado_counts-0.1.0.tar.gz \\
        --output=[PROJECT]:[DATASET].[TABLE]
"""

import sys

from tornadoes.pipeline import main

if __name__ == "__main__":
    sys.exit(main())
