"""summstat - incremental summary statistics.

Count, extrema, mean and standard deviation in O(1), exact median and
percentiles while samples are retained, and fixed-boundary bins once
memory must be bounded.
"""
# pylint: disable=undefined-all-variable

from ._version import __version__
from ._warnings import DataQualityWarning, SummstatWarning
from .exceptions import BinIndexError, IllegalStateError, InvalidArgumentError, SummstatError
from .stats import MAX_SAMPLE, Bin, Stats, format_quantile_key

__all__ = [
    "__version__",
    "Bin",
    "BinIndexError",
    "BinningConfig",
    "DataQualityWarning",
    "IllegalStateError",
    "InvalidArgumentError",
    "MAX_SAMPLE",
    "Stats",
    "SummstatError",
    "SummstatWarning",
    "bins_to_dataframe",
    "format_quantile_key",
    "stats_to_dataframe",
]


def __getattr__(name):
    """Lazy import the optional layers so the core does not pull in pandas or pydantic."""
    if name == "BinningConfig":
        from .config import BinningConfig

        return BinningConfig
    elif name == "stats_to_dataframe" or name == "bins_to_dataframe":
        from .summary import bins_to_dataframe, stats_to_dataframe

        return locals()[name]
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
