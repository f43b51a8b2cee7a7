"""Warning classes for the summstat package.

These allow users to filter or capture summstat warnings with Python's
standard ``warnings`` module.

Example:
    Silence non-finite sample notices in a noisy pipeline::

        import warnings
        from summstat._warnings import DataQualityWarning

        warnings.filterwarnings("ignore", category=DataQualityWarning)
"""


class SummstatWarning(UserWarning):
    """Base class for all summstat warnings."""


class DataQualityWarning(SummstatWarning):
    """Sample-stream anomalies.

    Issued when a non-finite value (NaN or infinity) is added. The value
    is still ingested, but it poisons the running sums and, for NaN, is
    never counted in any bin.
    """
