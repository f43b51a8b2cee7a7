"""Exceptions raised by the :class:`~summstat.stats.Stats` accumulator.

Every error signals a caller contract violation. They share the
:class:`SummstatError` base and also derive from the matching builtin, so
``except ValueError`` style handlers keep working.

Examples:
    Distinguishing the failure categories::

        try:
            stats.percentile(0.5)
        except IllegalStateError:
            # accumulator already switched to bins
            ...
"""


class SummstatError(Exception):
    """Base class for all summstat errors."""


class InvalidArgumentError(SummstatError, ValueError):
    """Raised when an argument is outside its documented domain.

    Examples are a percentile outside ``[0, 1]``, ``high <= low`` or fewer
    than three bins in :meth:`Stats.create_bins`.
    """


class IllegalStateError(SummstatError, RuntimeError):
    """Raised when an operation is not valid in the accumulator's current mode."""


class BinIndexError(SummstatError, IndexError):
    """Raised when a bin index is outside ``[0, nbins)``.

    Attributes:
        index: The offending index.
        nbins: Number of bins that existed at the time of the call.
    """

    def __init__(self, index: int, nbins: int) -> None:
        self.index = index
        self.nbins = nbins
        super().__init__(f"Bin index {index} out of range for {nbins} bins")
