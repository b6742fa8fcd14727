"""Running target aggregates and delta-impurity formulas.

Two aggregates are used, keyed by the kind of the target feature:

- `MeanAggregate` (numeric target) keeps only a count and an online mean.
  The split score is the between-group variance
  `n_l * n_r / n * (mean_l - mean_r) ** 2`.
- `FrequencyAggregate` (categorical target) keeps per-category counts and
  `sf`, the sum of squared counts. Moving one sample into a group whose count
  for its category is `c` adds `2c + 1` to `sf`; moving one out removes
  `2c - 1`. The split score is `sf_l / n_l + sf_r / n_r - sf / n`.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable


class MeanAggregate:
    """Count and online mean of the target values in one group."""

    __slots__ = ("count", "mean")

    def __init__(self) -> None:
        self.count = 0
        self.mean = 0.0

    def add(self, x: float) -> None:
        """Absorb one target value."""
        self.count += 1
        self.mean += (x - self.mean) / self.count

    def remove(self, x: float) -> None:
        """Release one previously absorbed target value."""
        self.count -= 1
        if self.count == 0:
            self.mean = 0.0
        else:
            self.mean -= (x - self.mean) / self.count

    def __repr__(self) -> str:
        return f"MeanAggregate(count={self.count}, mean={self.mean!r})"


class FrequencyAggregate:
    """Per-category counts and their sum of squares in one group."""

    __slots__ = ("count", "counts", "sf")

    def __init__(self) -> None:
        self.count = 0
        self.counts: defaultdict[float, int] = defaultdict(int)
        self.sf = 0

    def add(self, x: float) -> None:
        """Absorb one target category code."""
        c = self.counts[x]
        self.sf += 2 * c + 1
        self.counts[x] = c + 1
        self.count += 1

    def remove(self, x: float) -> None:
        """Release one previously absorbed target category code."""
        c = self.counts[x]
        self.sf -= 2 * c - 1
        self.counts[x] = c - 1
        self.count -= 1

    def __repr__(self) -> str:
        return f"FrequencyAggregate(count={self.count}, sf={self.sf})"


type TargetAggregate = MeanAggregate | FrequencyAggregate


def new_aggregate(*, numeric_target: bool, values: Iterable[float] = ()) -> TargetAggregate:
    """Create an aggregate for a target kind, optionally pre-filled.

    Args:
        numeric_target (bool): Use a mean aggregate instead of a frequency one.
        values (Iterable[float]): Target values to absorb immediately.

    Returns:
        TargetAggregate: The new aggregate.
    """
    aggregate: TargetAggregate = MeanAggregate() if numeric_target else FrequencyAggregate()
    for x in values:
        aggregate.add(float(x))
    return aggregate


def delta_impurity_regression(mean_left: float, n_left: int, mean_right: float, n_right: int) -> float:
    """Between-group variance of a two-way split of a numeric target.

    Returns:
        float: `n_left * n_right / n * (mean_left - mean_right) ** 2`, or 0.0
            if either side is empty.
    """
    if n_left == 0 or n_right == 0:
        return 0.0
    n_total = n_left + n_right
    return n_left * n_right / n_total * (mean_left - mean_right) ** 2


def delta_impurity_classification(
    sf_total: int,
    n_total: int,
    sf_left: int,
    n_left: int,
    sf_right: int,
    n_right: int,
) -> float:
    """Weighted Gini gain of a two-way split of a categorical target.

    Returns:
        float: `sf_left / n_left + sf_right / n_right - sf_total / n_total`,
            or 0.0 if either side is empty.
    """
    if n_left == 0 or n_right == 0:
        return 0.0
    return sf_left / n_left + sf_right / n_right - sf_total / n_total


def delta_impurity(left: TargetAggregate, right: TargetAggregate, total: TargetAggregate) -> float:
    """Delta impurity of a partition described by three aggregates of one kind.

    Args:
        left (TargetAggregate): Aggregate of the left group.
        right (TargetAggregate): Aggregate of the right group.
        total (TargetAggregate): Aggregate of both groups together.

    Returns:
        float: The delta impurity for the aggregates' target kind.
    """
    if isinstance(left, MeanAggregate) and isinstance(right, MeanAggregate):
        return delta_impurity_regression(left.mean, left.count, right.mean, right.count)
    if (
        isinstance(left, FrequencyAggregate)
        and isinstance(right, FrequencyAggregate)
        and isinstance(total, FrequencyAggregate)
    ):
        return delta_impurity_classification(total.sf, total.count, left.sf, left.count, right.sf, right.count)
    raise TypeError(f"Mismatched aggregates: {type(left).__name__} and {type(right).__name__}")
