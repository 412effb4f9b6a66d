"""
Normalization primitives shared by the cost functions.

Two measures map a per-server distribution to [0, 1]:

- cost_from_stats: dispersion of a sample, min(1, stdev / (2 * mean)).
  Saturates at 1 once the spread reaches twice the mean, the point where a
  single outlier dominates the sample.
- skew_cost: total absolute deviation from the mean, relative to the worst
  case in which one server holds everything. For n servers holding k single
  regions this is (n - k) / (n - 1), so concentrating load on one server
  costs 1 and an even spread costs 0.

Both are exactly 0 on degenerate input (empty sample, zero mean, a single
value) and never produce NaN.
"""

import math
import statistics
from collections.abc import Sequence


def cost_from_stats(values: Sequence[float]) -> float:
    """
    Dispersion measure of a sample.

    Uses the sample standard deviation. Returns 0 when the deviation is
    undefined (fewer than two values), when the mean is not positive, or when
    every value is the same.

    Args:
        values: The sample, e.g. per-server region counts of one table.

    Returns:
        min(1, stdev / (2 * mean)) in [0, 1].
    """
    if len(values) < 2:
        return 0.0
    mean = math.fsum(values) / len(values)
    if mean <= 0 or math.isnan(mean):
        return 0.0
    deviation = statistics.stdev(values)
    if math.isnan(deviation) or deviation <= 0:
        return 0.0
    return min(1.0, deviation / (2 * mean))


def cost_from_moments(count: int, total: int, sum_of_squares: int) -> float:
    """
    cost_from_stats computed from integer moments of a sample.

    Lets callers keep the sum and the sum of squares up to date in O(1)
    instead of rescanning the sample.

    Args:
        count: Number of values in the sample.
        total: Sum of the values.
        sum_of_squares: Sum of the squared values.
    """
    if count < 2 or total <= 0:
        return 0.0
    numerator = count * sum_of_squares - total * total
    if numerator <= 0:
        return 0.0
    deviation = math.sqrt(numerator / (count * (count - 1)))
    mean = total / count
    return min(1.0, deviation / (2 * mean))


def scaled_deviation(values: Sequence[int]) -> int:
    """
    Integer total absolute deviation, scaled by the sample size.

    Returns sum(|n * v - total|), which is n times the total absolute
    deviation from the mean and stays exact under incremental updates.
    """
    count = len(values)
    total = sum(values)
    return sum(abs(count * v - total) for v in values)


def skew_cost_from_deviation(deviation: int, count: int, total: int) -> float:
    """
    Normalize a scaled_deviation value to [0, 1].

    The worst case, everything on one server, has a scaled deviation of
    2 * total * (count - 1).
    """
    if count <= 1 or total <= 0:
        return 0.0
    return min(1.0, deviation / (2 * total * (count - 1)))


def skew_cost(values: Sequence[int]) -> float:
    """
    Skew of a per-server distribution in [0, 1].

    Example:
        skew_cost([0, 0, 0, 0, 1])  # 1.0
        skew_cost([0, 0, 0, 1, 1])  # 0.75
        skew_cost([1, 1, 1, 1, 1])  # 0.0
    """
    return skew_cost_from_deviation(scaled_deviation(values), len(values), sum(values))
