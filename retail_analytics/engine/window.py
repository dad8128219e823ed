"""
Window Engine

The two window shapes the reports use:

- trailing moving average: sort, then slide a frame of
  "current row plus up to width-1 preceding rows"
- partition-relative average: group, then broadcast the partition mean
  back to every row of the partition

Both take aggregated rows (mappings) and return fresh rows; inputs are never
mutated. Means are computed exactly and rounded once, at the end.
"""

from collections import deque
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from .numeric import exact_divide, exact_subtract, round_half_up, to_decimal

logger = structlog.get_logger(__name__)

Table = List[Dict[str, Any]]


def _columns(names: Any) -> Tuple[str, ...]:
    if isinstance(names, str):
        return (names,)
    return tuple(names)


def trailing_average(
    rows: Iterable[Mapping[str, Any]],
    order_by: Sequence[str],
    measure: str,
    output: str,
    width: int = 3,
    places: Optional[int] = 2,
) -> Table:
    """
    Trailing moving average over rows ordered by `order_by` ascending.

    Row i (after sorting) gets mean(measure[max(0, i-width+1) .. i]); the
    first rows average over fewer values. Equal sort keys keep their input
    order. Null measures are excluded from the mean (None if the frame has
    no values).

    Args:
        rows: Aggregated rows, e.g. one per (year, month)
        order_by: Sort columns, most significant first
        measure: Column to average
        output: Name of the new column
        width: Frame width including the current row
        places: Decimal places of the output; None keeps full precision
    """
    if width < 1:
        raise ValueError("width must be >= 1")

    keys = _columns(order_by)
    # sorted() is stable, so ties stay in insertion order
    ordered = sorted(rows, key=lambda r: tuple(r[k] for k in keys))

    frame: deque = deque(maxlen=width)
    result: Table = []
    for row in ordered:
        frame.append(row[measure])
        values = [to_decimal(v) for v in frame if v is not None]
        mean = exact_divide(sum(values, Decimal(0)), len(values)) if values else None
        out = dict(row)
        out[output] = round_half_up(mean, places)
        result.append(out)

    logger.debug("Trailing average computed", rows=len(result), width=width, measure=measure)
    return result


def partition_average(
    rows: Iterable[Mapping[str, Any]],
    partition_by: Sequence[str],
    measure: str,
    avg_output: str,
    diff_output: str,
    places: Optional[int] = 2,
) -> Table:
    """
    Broadcast the mean of `measure` over each partition to its rows.

    Every row receives its partition's average and measure - average. The
    difference is taken against the unrounded average; both values are
    rounded afterwards. Row order is preserved. Rows with a null measure
    receive a null difference and do not contribute to the average.
    """
    keys = _columns(partition_by)
    materialized = list(rows)

    totals: Dict[Tuple[Any, ...], List[Any]] = {}
    for row in materialized:
        key = tuple(row[k] for k in keys)
        acc = totals.setdefault(key, [Decimal(0), 0])
        value = row[measure]
        if value is not None:
            acc[0] += to_decimal(value)
            acc[1] += 1

    averages: Dict[Tuple[Any, ...], Optional[Decimal]] = {
        key: (exact_divide(total, count) if count else None)
        for key, (total, count) in totals.items()
    }

    result: Table = []
    for row in materialized:
        avg = averages[tuple(row[k] for k in keys)]
        value = row[measure]
        diff = None if value is None or avg is None else exact_subtract(value, avg)
        out = dict(row)
        out[avg_output] = round_half_up(avg, places)
        out[diff_output] = round_half_up(diff, places)
        result.append(out)

    logger.debug("Partition average computed", rows=len(result), partitions=len(averages))
    return result
