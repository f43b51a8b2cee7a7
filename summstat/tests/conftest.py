"""Pytest configuration and shared fixtures."""

from typing import Callable, Iterable

import pytest

from summstat.stats import Stats


@pytest.fixture
def make_stats() -> Callable[[Iterable[float]], Stats]:
    """Return a factory building a Stats with samples added one at a time."""

    def _make(samples: Iterable[float]) -> Stats:
        stats = Stats()
        for sample in samples:
            stats.add_sample(sample)
        return stats

    return _make


@pytest.fixture
def five_samples(make_stats):
    """Accumulator holding the percentile reference samples."""
    return make_stats([0, 1, 10, 25, 100])


@pytest.fixture
def outlier_samples():
    """One hundred and forty samples of 1..10 bracketed by two huge outliers."""
    return [-1000000.0] + list(range(1, 11)) * 14 + [1000000.0]
