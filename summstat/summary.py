"""Tabular export of accumulator state for reports and notebooks."""

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .stats import Stats, format_quantile_key

DEFAULT_PERCENTILES: Sequence[float] = (0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99)


def stats_to_dataframe(
    stats: Stats, percentiles: Optional[Sequence[float]] = None
) -> pd.DataFrame:
    """Convert the statistics of an accumulator to a long-format DataFrame.

    Args:
        stats: Accumulator to export.
        percentiles: Percentile positions reported in exact mode. Defaults
            to :data:`DEFAULT_PERCENTILES`.

    Returns:
        DataFrame with ``category``, ``metric`` and ``value`` columns. Basic
        aggregates come first, then either the median and percentiles
        (exact mode) or one row per bin with ``low`` and ``high`` filled in
        (binned mode).
    """
    if percentiles is None:
        percentiles = DEFAULT_PERCENTILES

    rows: List[Dict[str, Any]] = []

    # Basic statistics
    for metric in ("count", "min", "max", "spread", "mean", "stddev"):
        rows.append({"category": "basic", "metric": metric, "value": getattr(stats, metric)()})

    if stats.is_binned:
        for i, b in enumerate(stats.bins()):
            rows.append(
                {
                    "category": "bin",
                    "metric": f"bin_{i}",
                    "value": b.count,
                    "low": b.low,
                    "high": b.high,
                }
            )
    else:
        rows.append({"category": "order", "metric": "median", "value": stats.median()})
        for p in sorted(percentiles):
            rows.append(
                {
                    "category": "percentile",
                    "metric": format_quantile_key(p),
                    "value": stats.percentile(p),
                }
            )

    return pd.DataFrame(rows)


def bins_to_dataframe(stats: Stats) -> pd.DataFrame:
    """Return the bins of an accumulator as a DataFrame.

    Columns are ``low``, ``high`` and ``count``; one row per bin. Empty in
    exact mode.
    """
    return pd.DataFrame(
        [b._asdict() for b in stats.bins()], columns=["low", "high", "count"]
    )
