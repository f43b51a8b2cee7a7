"""Tests for the exact -> binned mode transition and bin inspection."""

import logging
import math

import numpy as np
import pytest

from summstat import BinIndexError, IllegalStateError, InvalidArgumentError
from summstat.stats import MAX_SAMPLE, Bin, Stats

# samples, nbins, low, high, thresholds
BIN_TABLE = [
    ([1, 2, 3], 3, 1, 3, [1, 3, MAX_SAMPLE]),
    ([1, 2, 3, 4], 4, 1, 4, [1, 2.5, 4, MAX_SAMPLE]),
    ([1, 2, 3, 4], 5, 1, 4, [1, 2, 3, 4, MAX_SAMPLE]),
    ([-100, -75, -50], 4, -100, -50, [-100, -75, -50, MAX_SAMPLE]),
]


@pytest.fixture
def unit_bins(make_stats):
    """Accumulator with one bin per unit value between 1 and 4."""
    s = make_stats([1, 2, 3, 4])
    s.create_bins(5, 1, 4)
    return s


class TestCreateBins:
    """Threshold construction and preconditions."""

    @pytest.mark.parametrize("samples, nbins, low, high, thresholds", BIN_TABLE)
    def test_bin_table(self, make_stats, samples, nbins, low, high, thresholds):
        s = make_stats(samples)
        s.create_bins(nbins, low, high)
        assert s.nbins == nbins
        assert s.thresholds == thresholds

    def test_switches_mode_and_drops_samples(self, make_stats):
        s = make_stats([1, 2, 3])
        assert not s.is_binned
        assert s.retained == 3
        s.create_bins(3, 1, 3)
        assert s.is_binned
        assert s.retained == 0
        assert [b.count for b in s.bins()] == [0, 0, 0]

    @pytest.mark.parametrize("low, high", [(1, 1), (3, 1), (0, float("nan"))])
    def test_high_must_exceed_low(self, low, high):
        with pytest.raises(InvalidArgumentError, match="must be greater than low"):
            Stats().create_bins(3, low, high)

    @pytest.mark.parametrize(
        "low, high",
        [
            (-math.inf, 0),
            (0, math.inf),
            (0, math.nan),
            (-MAX_SAMPLE, MAX_SAMPLE),
        ],
    )
    def test_bounds_must_be_finite(self, low, high):
        """Infinite bounds or an overflowing range would break threshold order."""
        s = Stats()
        with pytest.raises(InvalidArgumentError):
            s.create_bins(3, low, high)
        assert not s.is_binned

    @pytest.mark.parametrize("nbins", [2, 1, 0, -4])
    def test_minimum_bin_count(self, nbins):
        with pytest.raises(InvalidArgumentError, match="Not enough bins"):
            Stats().create_bins(nbins, 0, 1)

    def test_only_once(self, unit_bins):
        """Bins cannot be recreated once binned mode is active."""
        with pytest.raises(IllegalStateError):
            unit_bins.create_bins(3, 0, 1)

    @pytest.mark.parametrize("query", ["median", "percentile"])
    def test_order_statistics_unavailable(self, unit_bins, query):
        args = (0.5,) if query == "percentile" else ()
        with pytest.raises(IllegalStateError, match=query):
            getattr(unit_bins, query)(*args)

    def test_logs_transition(self, make_stats, caplog):
        s = make_stats([1, 2, 3])
        with caplog.at_level(logging.INFO, logger="summstat.stats"):
            s.create_bins(3, 1, 3)
        assert "Switched to binned mode" in caplog.text
        assert "discarded 3 samples" in caplog.text


class TestBinnedIngestion:
    """Counting samples into bins after the transition."""

    @pytest.mark.parametrize(
        "value, expected_bin",
        [
            (-1e300, 0),
            (0.5, 0),
            (1, 0),
            (1.5, 1),
            (2, 1),
            (2.000001, 2),
            (3, 2),
            (4, 3),
            (4.1, 4),
            (1e308, 4),
            (MAX_SAMPLE, 4),
        ],
    )
    def test_first_threshold_at_or_above_wins(self, unit_bins, value, expected_bin):
        unit_bins.add_sample(value)
        counts = [b.count for b in unit_bins.bins()]
        assert counts[expected_bin] == 1
        assert sum(counts) == 1

    def test_bins_only_count_samples_after_creation(self, make_stats):
        """Samples retained before the switch are absent from bin counts."""
        s = make_stats([1, 2, 3, 4, 5])
        s.create_bins(4, 1, 5)
        s.add_samples([2, 2, 6])
        assert s.count() == 8
        assert sum(b.count for b in s.bins()) == 3

    def test_aggregates_survive_transition(self, make_stats):
        s = make_stats([1, 2, 3])
        s.create_bins(3, 1, 3)
        s.add_sample(10)
        assert s.count() == 4
        assert s.min() == 1
        assert s.max() == 10
        assert s.spread() == 9
        assert s.mean() == 4
        assert s.stddev() == pytest.approx(math.sqrt(114 / 4 - 16))

    def test_samples_not_retained(self, unit_bins):
        unit_bins.add_samples(range(100))
        assert unit_bins.retained == 0
        assert unit_bins.count() == 104

    @pytest.mark.filterwarnings("ignore::summstat.DataQualityWarning")
    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_values_past_sentinel_land_in_no_bin(self, unit_bins, value):
        unit_bins.add_sample(value)
        assert unit_bins.count() == 1
        assert sum(b.count for b in unit_bins.bins()) == 0

    def test_summary_binned_mode(self, unit_bins):
        unit_bins.add_samples([0, 2.5, 2.5])
        summary = unit_bins.summary()
        assert summary["bin_counts"] == [1, 0, 2, 0, 0]
        assert "median" not in summary
        assert repr(unit_bins) == "Stats(count=7, binned, nbins=5)"


class TestBinInspection:
    """bin(i) and bins()."""

    def test_first_bin_extends_to_negative_max(self, unit_bins):
        unit_bins.add_sample(-3)
        assert unit_bins.bin(0) == Bin(count=1, low=-MAX_SAMPLE, high=1.0)

    def test_interior_and_last_bins(self, unit_bins):
        unit_bins.add_sample(3.5)
        assert unit_bins.bin(3) == Bin(1, 3.0, 4.0)
        assert unit_bins.bin(4) == Bin(0, 4.0, MAX_SAMPLE)

    def test_bins_are_contiguous(self, unit_bins):
        bins = unit_bins.bins()
        assert len(bins) == 5
        for left, right in zip(bins, bins[1:]):
            assert left.high == right.low

    @pytest.mark.parametrize("index", [1.0, 0.5, "1"])
    def test_non_integer_index(self, unit_bins, index):
        with pytest.raises(BinIndexError):
            unit_bins.bin(index)

    def test_numpy_integer_index(self, unit_bins):
        unit_bins.add_sample(2)
        assert unit_bins.bin(np.int64(1)).count == 1

    @pytest.mark.parametrize("index", [5, 6, -1, -5])
    def test_out_of_range(self, unit_bins, index):
        with pytest.raises(BinIndexError) as exc_info:
            unit_bins.bin(index)
        assert exc_info.value.index == index
        assert exc_info.value.nbins == 5

    def test_exact_mode_has_no_bins(self, make_stats):
        s = make_stats([1, 2])
        assert s.bins() == []
        with pytest.raises(IndexError):
            s.bin(0)


class TestCreateBinsDiscard:
    """Percentile-ranged bins with tail discarding."""

    def test_unit_values_with_outliers(self, make_stats, outlier_samples):
        s = make_stats(outlier_samples)
        s.create_bins_discard(11, 0.01)
        assert s.thresholds == [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, MAX_SAMPLE]

    def test_tens_with_outliers(self, make_stats):
        samples = [-1000000] + list(range(10, 101, 10)) * 14 + [1000000]
        s = make_stats(samples)
        s.create_bins_discard(11, 0.01)
        assert s.thresholds == [10, 20, 30, 40, 50, 60, 70, 80, 90, 100, MAX_SAMPLE]

    def test_not_enough_samples(self, make_stats):
        s = make_stats(range(99))
        with pytest.raises(IllegalStateError, match="Not enough samples"):
            s.create_bins_discard(11, 0.01)
        assert not s.is_binned

    def test_required_samples_round_up(self, make_stats):
        """1/0.3 needs four samples, not three."""
        with pytest.raises(IllegalStateError):
            make_stats([1, 2, 3]).create_bins_discard(3, 0.3)

        s = make_stats([1, 2, 3, 4])
        s.create_bins_discard(3, 0.3)
        assert s.thresholds == [2, 3, MAX_SAMPLE]

    @pytest.mark.parametrize("fraction", [0, -0.1, 0.5, 0.75])
    def test_fraction_out_of_range(self, make_stats, fraction):
        with pytest.raises(InvalidArgumentError, match="discard_fraction"):
            make_stats(range(100)).create_bins_discard(5, fraction)

    def test_constant_samples_give_empty_range(self, make_stats):
        with pytest.raises(InvalidArgumentError):
            make_stats([7] * 20).create_bins_discard(5, 0.1)

    @pytest.mark.filterwarnings("ignore::summstat.DataQualityWarning")
    def test_infinite_upper_percentile_rejected(self, make_stats):
        """An infinite sample chosen as the upper edge cannot range the bins."""
        s = make_stats([1, 2, 3, 4, 5, 6, 7, 8, math.inf, math.inf])
        with pytest.raises(InvalidArgumentError, match="finite"):
            s.create_bins_discard(5, 0.1)
        assert not s.is_binned
        assert s.retained == 10

    def test_after_binning(self, unit_bins):
        with pytest.raises(IllegalStateError, match="already"):
            unit_bins.create_bins_discard(5, 0.1)
