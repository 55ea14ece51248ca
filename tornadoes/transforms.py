"""Record-level transforms: filter tornado rows and count them per month."""

from __future__ import annotations

from typing import Iterator, Tuple

import apache_beam as beam

from utils.schemas import TornadoCount, TornadoRow


def tornado_months(row: TornadoRow) -> Iterator[int]:
    """Yield the row's month if a tornado was recorded.

    A missing `tornado` value counts as no tornado.
    """
    if row.tornado:
        yield row.month


def to_tornado_count(month_count: Tuple[int, int]) -> TornadoCount:
    month, count = month_count
    return TornadoCount(month=month, tornado_count=count)


class CountTornadoes(beam.PTransform):
    """TornadoRow -> TornadoCount, one output per month with tornadoes.

    Counting is a sum of ones per key, so partial counts from separate
    bundles can be merged in any order.
    """

    def expand(self, rows):
        return (
            rows
            | "TornadoMonths" >> beam.FlatMap(tornado_months)
            | "PairWithOne" >> beam.Map(lambda month: (month, 1))
            | "SumPerMonth" >> beam.CombinePerKey(sum)
            | "ToTornadoCount" >> beam.Map(to_tornado_count)
        )
