"""Schema contracts for pipeline records.

**SINGLE SOURCE OF TRUTH**: both record shapes are declared here.

Each record has an explicit field table (`FieldSpec` tuples) that the
BigQuery schemas in `utils.bq_schemas` are rendered from, and explicit
converters to/from the BigQuery row representation (plain dicts).

To add/remove/modify fields:
1. Update the field table and the dataclass together
2. Update the record's `from_table_row` / `to_table_row`
3. Truncated output tables pick up the new schema on the next run
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One column of a BigQuery table."""

    name: str
    bq_type: str
    mode: str = "NULLABLE"


# =============================================================================
# Input: one row of the GSOD weather sample
# =============================================================================

# Legacy SQL (square-bracket table reference)
TORNADO_QUERY = "SELECT tornado, month FROM [bigquery-public-data:samples.gsod]"

TORNADO_ROW_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("tornado", "BOOLEAN"),
    FieldSpec("month", "INTEGER", mode="REQUIRED"),
)

_BOOL_STRINGS = {"true": True, "false": False}


def _to_optional_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ValueError(f"Cannot interpret {value!r} as BOOLEAN")


def _to_int(value: Any, field_name: str) -> int:
    if value is None:
        raise ValueError(f"Row is missing required field '{field_name}'")
    if isinstance(value, bool):
        raise ValueError(f"Cannot interpret {value!r} as INTEGER for '{field_name}'")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Cannot interpret {value!r} as INTEGER for '{field_name}'") from exc


@dataclass(frozen=True, slots=True)
class TornadoRow:
    """Row produced by `TORNADO_QUERY`.

    `tornado` is NULLABLE in the source table; None means "not recorded".
    """

    tornado: Optional[bool]
    month: int

    @classmethod
    def from_table_row(cls, row: Mapping[str, Any]) -> "TornadoRow":
        """Build from a BigQuery row dict.

        Raises:
            ValueError: If `month` is missing or either field has an
                unexpected value.
        """
        return cls(
            tornado=_to_optional_bool(row.get("tornado")),
            month=_to_int(row.get("month"), "month"),
        )


# =============================================================================
# Output: tornado count per month
# =============================================================================

TORNADO_COUNT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("month", "INTEGER", mode="REQUIRED"),
    FieldSpec("tornado_count", "INTEGER", mode="REQUIRED"),
)


@dataclass(frozen=True, slots=True)
class TornadoCount:
    """Number of tornado observations recorded in a month."""

    month: int
    tornado_count: int

    def to_table_row(self) -> Dict[str, Any]:
        return {"month": self.month, "tornado_count": self.tornado_count}

    @classmethod
    def from_table_row(cls, row: Mapping[str, Any]) -> "TornadoCount":
        return cls(
            month=_to_int(row.get("month"), "month"),
            tornado_count=_to_int(row.get("tornado_count"), "tornado_count"),
        )
