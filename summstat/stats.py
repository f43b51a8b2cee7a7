"""Incremental summary statistics over a stream of numeric samples.

A :class:`Stats` accumulator keeps running sums so that count, extrema,
mean and standard deviation are available in O(1) at any time. While in
*exact mode* it also retains every sample, which makes exact medians and
percentiles possible. When the stream is too large to keep in memory the
accumulator can be switched once, irreversibly, into *binned mode*: the
retained samples are dropped and each later sample only increments the
count of the fixed-boundary bin it falls into.

A typical pattern is to collect a representative prefix of the stream,
derive the bin range from it with :meth:`Stats.create_bins_discard`, and
keep tracking the distribution approximately from then on.

Examples:
    Exact percentiles, then bounded memory::

        stats = Stats()
        stats.add_samples(first_thousand_latencies)
        p99 = stats.percentile(0.99)

        stats.create_bins_discard(nbins=22, discard_fraction=0.01)
        for latency in stream:
            stats.add_sample(latency)
        for b in stats.bins():
            print(f"({b.low:g}, {b.high:g}]: {b.count}")
"""

import logging
import math
import operator
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, NamedTuple, Union
import warnings

import numpy as np

from ._warnings import DataQualityWarning
from .exceptions import BinIndexError, IllegalStateError, InvalidArgumentError

if TYPE_CHECKING:
    from .config import BinningConfig

logger = logging.getLogger(__name__)

MAX_SAMPLE: float = float(np.finfo(np.float64).max)
"""Upper edge of the catch-all last bin; its negation is the lower edge of bin 0."""

MIN_BINS = 3


def format_quantile_key(q: float) -> str:
    """Format a quantile as a dictionary key with per-mille resolution.

    Args:
        q: Quantile value in range [0, 1].

    Returns:
        Key string such as ``q0250`` for the 25th percentile or ``q0005``
        for the 0.5th percentile.
    """
    return f"q{round(q * 1000):04d}"


class Bin(NamedTuple):
    """Count of samples in the half-open interval ``(low, high]``."""

    count: int
    low: float
    high: float


class Stats:
    """Descriptive statistics for samples that are added incrementally.

    Count, min, max, spread, mean and (population) standard deviation are
    tracked for every sample ever added, whatever the mode. Median and
    percentiles need the raw samples and are only available before
    :meth:`create_bins` is called; afterwards use :meth:`bin` to inspect
    the distribution.

    Samples are appended unsorted. The first order-statistic query after
    new samples arrive sorts them once and the sorted order is reused until
    the next :meth:`add_sample`.

    Not thread-safe. Guard a shared instance with an external lock.
    """

    def __init__(self) -> None:
        self._count = 0
        self._sum = 0.0
        self._sum_sq = 0.0
        # min > max holds exactly while nothing has been added
        self._min = math.inf
        self._max = -math.inf
        self._samples: List[float] = []
        self._sorted = True
        self._bins: np.ndarray = np.array([], dtype=np.float64)
        self._bin_counts: np.ndarray = np.array([], dtype=np.int64)

    # ------------------------------------------------------------------ #
    #  Ingestion
    # ------------------------------------------------------------------ #

    def add_sample(self, value: float) -> None:
        """Add a sample value and update the statistics.

        In binned mode the sample is counted in the first bin whose upper
        threshold is >= ``value`` and is not stored. In exact mode it is
        appended to the retained samples.

        Args:
            value: The sample. Any float is accepted; non-finite values
                trigger a :class:`DataQualityWarning`.
        """
        value = float(value)
        if not math.isfinite(value):
            warnings.warn(
                f"Non-finite sample added: {value}", DataQualityWarning, stacklevel=2
            )

        self._count += 1
        self._sum += value
        self._sum_sq += value * value
        if value > self._max:
            self._max = value
        if value < self._min:
            self._min = value

        if len(self._bins) > 0:
            # Leftmost threshold >= value; NaN and +inf fall past the sentinel
            idx = int(np.searchsorted(self._bins, value, side="left"))
            if idx < len(self._bins):
                self._bin_counts[idx] += 1
        else:
            self._samples.append(value)
            self._sorted = False

    def add_samples(self, values: Union[Iterable[float], np.ndarray]) -> None:
        """Add several samples, in order.

        Equivalent to calling :meth:`add_sample` once per value.

        Args:
            values: Iterable or array of sample values. Arrays of any shape
                are flattened.
        """
        if isinstance(values, np.ndarray):
            arr = values
        else:
            arr = np.fromiter(values, dtype=np.float64)
        for value in arr.ravel().tolist():
            self.add_sample(value)

    # ------------------------------------------------------------------ #
    #  Running aggregates
    # ------------------------------------------------------------------ #

    def count(self) -> int:
        """Return the number of samples added."""
        return self._count

    def min(self) -> float:
        """Return the minimal sample value added, or 0 if there are none."""
        if self._min > self._max:
            return 0.0
        return self._min

    def max(self) -> float:
        """Return the maximal sample value added, or 0 if there are none."""
        if self._min > self._max:
            return 0.0
        return self._max

    def spread(self) -> float:
        """Return the difference of the maximal and minimal sample values."""
        if self._min > self._max:
            return 0.0
        return self._max - self._min

    def mean(self) -> float:
        """Return the mean of the samples (NaN when empty)."""
        if self._count == 0:
            return math.nan
        return self._sum / self._count

    def stddev(self) -> float:
        """Return the population standard deviation of the samples.

        Computed as ``sqrt(E[x^2] - E[x]^2)``, dividing by the sample count
        rather than ``count - 1``. NaN when empty.
        """
        if self._count == 0:
            return math.nan
        m = self.mean()
        variance = self._sum_sq / self._count - m * m
        # rounding can push a zero variance slightly negative
        return math.sqrt(max(variance, 0.0))

    # ------------------------------------------------------------------ #
    #  Order statistics (exact mode only)
    # ------------------------------------------------------------------ #

    def _require_exact(self, operation: str) -> None:
        if self.is_binned:
            raise IllegalStateError(f"cannot call {operation}() after create_bins()")

    def _sort_samples(self) -> None:
        if not self._sorted:
            self._samples.sort()
            self._sorted = True

    def percentile(self, pct: float) -> float:
        """Return the sample value at the given percentile.

        Uses nearest rank with ties rounded up: the sample at sorted index
        ``floor((n - 1) * pct + 0.5)``. No interpolation between neighbours
        is done, so the result is always one of the added samples.

        Args:
            pct: Fractional position in ``[0, 1]``.

        Returns:
            The selected sample, or 0 if no samples are held.

        Raises:
            IllegalStateError: If called after :meth:`create_bins`.
            InvalidArgumentError: If ``pct`` is outside ``[0, 1]``.
        """
        self._require_exact("percentile")
        if not 0 <= pct <= 1:
            raise InvalidArgumentError(f"Percentile must be in [0, 1], got {pct}")
        if not self._samples:
            return 0.0
        self._sort_samples()
        index = math.floor((len(self._samples) - 1) * pct + 0.5)
        return self._samples[index]

    def percentiles(self, pcts: Iterable[float]) -> Dict[str, float]:
        """Return several percentiles keyed by :func:`format_quantile_key`.

        Args:
            pcts: Fractional positions, each in ``[0, 1]``.

        Returns:
            Mapping such as ``{"q0500": ..., "q0990": ...}`` in ascending
            order of position.

        Raises:
            InvalidArgumentError: If two different positions share a key,
                e.g. 0.25 and 0.2501 both format as ``q0250``.
        """
        result: Dict[str, float] = {}
        positions: Dict[str, float] = {}
        for p in sorted(pcts):
            key = format_quantile_key(p)
            if key in positions and positions[key] != p:
                raise InvalidArgumentError(
                    f"Percentiles {positions[key]} and {p} both map to key {key}"
                )
            positions[key] = p
            result[key] = self.percentile(p)
        return result

    def median(self) -> float:
        """Return the median of the samples.

        For an even number of samples this is the mean of the two middle
        values. Returns 0 when no samples are held.

        Raises:
            IllegalStateError: If called after :meth:`create_bins`.
        """
        self._require_exact("median")
        n = len(self._samples)
        if n == 0:
            return 0.0
        self._sort_samples()
        half, rem = divmod(n, 2)
        if rem == 0:
            return (self._samples[half] + self._samples[half - 1]) / 2
        return self._samples[half]

    # ------------------------------------------------------------------ #
    #  Binning
    # ------------------------------------------------------------------ #

    @property
    def is_binned(self) -> bool:
        """Whether the accumulator has switched to binned mode."""
        return len(self._bins) > 0

    @property
    def retained(self) -> int:
        """Number of raw samples currently held (always 0 in binned mode)."""
        return len(self._samples)

    @property
    def nbins(self) -> int:
        """Number of bins, 0 in exact mode."""
        return len(self._bins)

    @property
    def thresholds(self) -> List[float]:
        """Upper bin edges in ascending order; the last one is :data:`MAX_SAMPLE`."""
        return self._bins.tolist()

    def create_bins(self, nbins: int, low: float, high: float) -> None:
        """Divide the sample space into ``nbins`` bins for tracking counts.

        The bins created are::

            (-inf, low], (low, low + s/m], ..., (high - s/m, high], (high, +inf)

        where ``s = high - low`` and ``m = nbins - 2``. The infinite edges
        are approximated by ``-MAX_SAMPLE`` and ``MAX_SAMPLE``.

        From now on each added sample only increments its bin count and is
        not stored. Samples already retained are discarded; they remain in
        the running aggregates but are not counted in any bin. This is a
        one-way switch: :meth:`percentile` and :meth:`median` are no longer
        available.

        Args:
            nbins: Total number of bins, at least 3.
            low: Upper edge of the first bin.
            high: Upper edge of the last interior bin; must exceed ``low``.

        Raises:
            InvalidArgumentError: If ``high <= low``, either bound or their
                difference is not finite, or ``nbins < 3``.
            IllegalStateError: If bins were already created.
        """
        if self.is_binned:
            raise IllegalStateError("Bins have already been created")
        if not high > low:
            raise InvalidArgumentError(f"high ({high}) must be greater than low ({low})")
        if not math.isfinite(high - low):
            raise InvalidArgumentError(f"Bin range ({low}, {high}] must be finite")
        if nbins < MIN_BINS:
            raise InvalidArgumentError(f"Not enough bins: {nbins} (minimum {MIN_BINS})")

        spread = high - low
        interior = nbins - 2
        thresholds = [i * spread / interior + low for i in range(nbins - 1)]
        thresholds.append(MAX_SAMPLE)

        discarded = len(self._samples)
        self._bins = np.array(thresholds, dtype=np.float64)
        self._bin_counts = np.zeros(nbins, dtype=np.int64)
        self._samples = []
        self._sorted = True

        logger.info(
            "Switched to binned mode: %d bins over (%g, %g], discarded %d samples",
            nbins,
            low,
            high,
            discarded,
        )

    def create_bins_discard(self, nbins: int, discard_fraction: float) -> None:
        """Create bins ranged on the retained samples minus both tails.

        Shorthand for ``create_bins(nbins, percentile(f), percentile(1 - f))``
        with a check that at least ``ceil(1 / f)`` samples are retained, so
        that discarding a fraction ``f`` on each side is meaningful.

        Args:
            nbins: Total number of bins, at least 3.
            discard_fraction: Fraction of samples ignored on each tail when
                choosing the range, strictly between 0 and 0.5.

        Raises:
            InvalidArgumentError: If ``discard_fraction`` is out of range, or
                the derived range is empty (all retained samples equal).
            IllegalStateError: If bins already exist or not enough samples
                are retained.
        """
        if self.is_binned:
            raise IllegalStateError("Bins have already been created")
        if not 0 < discard_fraction < 0.5:
            raise InvalidArgumentError(
                f"discard_fraction must be in (0, 0.5), got {discard_fraction}"
            )
        required = math.ceil(1.0 / discard_fraction)
        if len(self._samples) < required:
            raise IllegalStateError(
                f"Not enough samples: {len(self._samples)} retained, "
                f"{required} required for discard_fraction={discard_fraction}"
            )

        low = self.percentile(discard_fraction)
        high = self.percentile(1.0 - discard_fraction)
        logger.debug(f"Bin range from {len(self._samples)} samples: low={low}, high={high}")
        self.create_bins(nbins, low, high)

    def apply_binning(self, config: "BinningConfig") -> None:
        """Switch to binned mode as described by a :class:`BinningConfig`."""
        if config.discard_fraction is not None:
            self.create_bins_discard(config.nbins, config.discard_fraction)
        elif config.low is None or config.high is None:
            raise InvalidArgumentError("BinningConfig needs low and high or discard_fraction")
        else:
            self.create_bins(config.nbins, config.low, config.high)

    def bin(self, i: int) -> Bin:
        """Return the count and the ``(low, high]`` edges of the i'th bin.

        Args:
            i: Bin index in ``[0, nbins)``. Negative indices are rejected.

        Returns:
            :class:`Bin` tuple. Bin 0's ``low`` is ``-MAX_SAMPLE``.

        Raises:
            BinIndexError: If ``i`` is not an integer or is out of range,
                including any index in exact mode.
        """
        try:
            i = operator.index(i)
        except TypeError:
            raise BinIndexError(i, len(self._bins)) from None
        if not 0 <= i < len(self._bins):
            raise BinIndexError(i, len(self._bins))
        high = float(self._bins[i])
        low = float(self._bins[i - 1]) if i > 0 else -MAX_SAMPLE
        return Bin(count=int(self._bin_counts[i]), low=low, high=high)

    def bins(self) -> List[Bin]:
        """Return every bin in ascending order (empty in exact mode)."""
        return [self.bin(i) for i in range(self.nbins)]

    # ------------------------------------------------------------------ #
    #  Reporting
    # ------------------------------------------------------------------ #

    def summary(self) -> Dict[str, Any]:
        """Return a snapshot of the statistics as a plain dictionary.

        Exact mode adds ``median``; binned mode adds ``bin_counts``.
        """
        result: Dict[str, Any] = {
            "count": self.count(),
            "min": self.min(),
            "max": self.max(),
            "spread": self.spread(),
            "mean": self.mean(),
            "stddev": self.stddev(),
        }
        if self.is_binned:
            result["bin_counts"] = self._bin_counts.tolist()
        else:
            result["median"] = self.median()
        return result

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        mode = f"binned, nbins={self.nbins}" if self.is_binned else "exact"
        return f"Stats(count={self._count}, {mode})"
