"""
Sample statistics for simulation outputs.
"""

import math
from typing import Optional, Sequence


def quantile(sorted_values: Sequence[float], q: float) -> Optional[float]:
    """
    Quantile of an ascending sample by linear interpolation between the
    closest ranks (rank = q * (n - 1)).

    Returns None for an empty sample. q is clamped to [0, 1].
    """
    n = len(sorted_values)
    if n == 0:
        return None

    q = min(1.0, max(0.0, q))
    position = (n - 1) * q
    i = int(math.floor(position))
    frac = position - i
    if i + 1 >= n:
        return float(sorted_values[i])
    return float(sorted_values[i] * (1 - frac) + sorted_values[i + 1] * frac)


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return float(sum(values) / len(values))
