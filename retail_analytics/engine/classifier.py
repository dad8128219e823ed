"""
Classifier

Three-way comparison of two numeric values mapped to a label set.
"""

from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from .numeric import round_half_up


class Labels(NamedTuple):
    """Labels for the a > b, a < b and a == b outcomes"""
    higher: str
    lower: str
    equal: str


PRICE_POSITION = Labels(higher="HIGHER", lower="LOWER", equal="EQUAL")
AVERAGE_POSITION = Labels(higher="Above Avg", lower="Below Avg", equal="Avg")


def classify(value_a: Any, value_b: Any, labels: Labels) -> Optional[str]:
    """
    Compare value_a with value_b.

    Returns labels.higher, labels.lower or labels.equal; None if either
    value is missing.
    """
    if value_a is None or value_b is None:
        return None
    if value_a > value_b:
        return labels.higher
    if value_a < value_b:
        return labels.lower
    return labels.equal


def classify_rows(
    rows: Iterable[Mapping[str, Any]],
    left: str,
    right: str,
    output: str,
    labels: Labels,
    places: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Add a label column comparing two columns of every row.

    With `places` set, both values are rounded before the comparison so the
    label agrees with the displayed figures.
    """
    result = []
    for row in rows:
        a = round_half_up(row[left], places)
        b = round_half_up(row[right], places)
        out = dict(row)
        out[output] = classify(a, b, labels)
        result.append(out)
    return result
