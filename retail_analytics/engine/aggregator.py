"""
Aggregator

Groups rows by a key tuple and reduces every group to named measures in a
single pass. Monetary values stay exact Decimals; rounding happens only
when a report is rendered.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from .numeric import exact_divide

logger = structlog.get_logger(__name__)

Row = Any
GroupKeyFn = Callable[[Row], Tuple[Any, ...]]


def field_value(row: Row, name: str) -> Any:
    """Read a column from a mapping row or an attribute from an object row"""
    if isinstance(row, Mapping):
        return row[name]
    return getattr(row, name)


class Measure:
    """
    A reduction over the rows of one group.

    Subclasses implement start/step/finish; the accumulator is private to a
    single group so every measure of a group sees the same row set.
    """

    def start(self) -> Any:
        raise NotImplementedError

    def step(self, state: Any, row: Row) -> Any:
        raise NotImplementedError

    def finish(self, state: Any) -> Any:
        return state


@dataclass(frozen=True)
class Sum(Measure):
    """sum(field); nulls are skipped"""
    field: str

    def start(self) -> Any:
        return 0

    def step(self, state: Any, row: Row) -> Any:
        value = field_value(row, self.field)
        return state if value is None else state + value


@dataclass(frozen=True)
class SumProduct(Measure):
    """sum(field_a * field_b), e.g. revenue = price x units_sold"""
    field_a: str
    field_b: str

    def start(self) -> Any:
        return 0

    def step(self, state: Any, row: Row) -> Any:
        a = field_value(row, self.field_a)
        b = field_value(row, self.field_b)
        if a is None or b is None:
            return state
        return state + a * b


@dataclass(frozen=True)
class Count(Measure):
    """count() of rows, or of rows matching a predicate"""
    predicate: Optional[Callable[[Row], bool]] = None

    def start(self) -> Any:
        return 0

    def step(self, state: Any, row: Row) -> Any:
        if self.predicate is None or self.predicate(row):
            return state + 1
        return state


@dataclass(frozen=True)
class Avg(Measure):
    """avg(field) over non-null values; None when there are none"""
    field: str

    def start(self) -> Any:
        return (0, 0)

    def step(self, state: Any, row: Row) -> Any:
        value = field_value(row, self.field)
        if value is None:
            return state
        total, count = state
        return (total + value, count + 1)

    def finish(self, state: Any) -> Optional[Decimal]:
        total, count = state
        if count == 0:
            return None
        return exact_divide(total, count)


def aggregate(
    rows: Iterable[Row],
    group_key_fn: GroupKeyFn,
    measures: Mapping[str, Measure],
    key_columns: Sequence[str] = (),
) -> List[Dict[str, Any]]:
    """
    Group rows and reduce each group to the requested measures.

    Args:
        rows: Input rows (fact rows or mappings)
        group_key_fn: Maps a row to its grouping tuple. None is a distinct group value.
        measures: Output column name -> Measure
        key_columns: Output column names for the components of the key tuple

    Returns:
        One fresh dict per distinct key, in first-seen order. With no key
        columns the result is a single global row, also for empty input.
    """
    groups: Dict[Tuple[Any, ...], List[Any]] = {}
    measure_items = list(measures.items())
    seen = 0

    for row in rows:
        seen += 1
        key = tuple(group_key_fn(row))
        states = groups.get(key)
        if states is None:
            states = [m.start() for _, m in measure_items]
            groups[key] = states
        for i, (_, measure) in enumerate(measure_items):
            states[i] = measure.step(states[i], row)

    if not key_columns and not groups:
        groups[()] = [m.start() for _, m in measure_items]

    table: List[Dict[str, Any]] = []
    for key, states in groups.items():
        if len(key) != len(key_columns):
            raise ValueError(
                f"Group key has {len(key)} components but {len(key_columns)} key columns were named"
            )
        out: Dict[str, Any] = dict(zip(key_columns, key))
        for (name, measure), state in zip(measure_items, states):
            out[name] = measure.finish(state)
        table.append(out)

    logger.debug("Aggregated rows", input_rows=seen, groups=len(table))
    return table
