"""Statistical primitives shared by the analytics builders."""

from typing import Sequence

import numpy as np


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson correlation coefficient of two series.

    Only the first ``min(len(xs), len(ys))`` values of each series are
    paired. Returns 0.0 when fewer than two pairs are available or when
    either paired series has zero variance.

    Args:
        xs: First series.
        ys: Second series.

    Returns:
        Correlation coefficient in [-1, 1].
    """
    n = min(len(xs), len(ys))
    if n < 2:
        return 0.0

    x = np.asarray(xs[:n], dtype=float)
    y = np.asarray(ys[:n], dtype=float)

    # Constant series: covariance is undefined
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt(np.dot(dx, dx) * np.dot(dy, dy))
    if denominator == 0:
        return 0.0

    r = float(np.dot(dx, dy) / denominator)
    return max(-1.0, min(1.0, r))
