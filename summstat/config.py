"""Binning configuration for switching a :class:`~summstat.stats.Stats` to bins.

A :class:`BinningConfig` captures how the histogram should be laid out so
the choice can live in a YAML file next to the rest of an application's
settings instead of in code.

Examples:
    Fixed range::

        config = BinningConfig(nbins=12, low=0.0, high=100.0)

    Range derived from the retained samples, dropping 1% on each tail::

        config = BinningConfig(nbins=22, discard_fraction=0.01)
        stats.apply_binning(config)

    From YAML::

        # binning.yaml
        nbins: 22
        discard_fraction: 0.01

        config = BinningConfig.from_yaml(Path("binning.yaml"))
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator
import yaml

from .stats import MIN_BINS

logger = logging.getLogger(__name__)


class BinningConfig(BaseModel):
    """Layout of the bins created when leaving exact mode.

    Exactly one ranging strategy must be given: either both ``low`` and
    ``high``, or ``discard_fraction``.

    Attributes:
        nbins: Total number of bins including the two open-ended ones.
        low: Upper edge of the first bin (fixed range).
        high: Upper edge of the last interior bin (fixed range).
        discard_fraction: Fraction of retained samples ignored on each tail
            when deriving the range from percentiles.
    """

    nbins: int = Field(ge=MIN_BINS, description="Total number of bins")
    low: Optional[float] = Field(
        default=None, allow_inf_nan=False, description="Upper edge of the first bin"
    )
    high: Optional[float] = Field(
        default=None, allow_inf_nan=False, description="Upper edge of the last interior bin"
    )
    discard_fraction: Optional[float] = Field(
        default=None, gt=0, lt=0.5, description="Tail fraction dropped on each side"
    )

    @model_validator(mode="after")
    def validate_range_strategy(self):
        """Ensure exactly one complete ranging strategy is configured.

        Returns:
            BinningConfig: The validated config object.

        Raises:
            ValueError: If both or neither strategies are set, only one of
                ``low``/``high`` is given, or ``high <= low``.
        """
        fixed = self.low is not None or self.high is not None
        if fixed and self.discard_fraction is not None:
            raise ValueError("Specify either low/high or discard_fraction, not both")
        if not fixed:
            if self.discard_fraction is None:
                raise ValueError("Specify either low/high or discard_fraction")
            return self
        if self.low is None or self.high is None:
            raise ValueError("Both low and high are required for a fixed range")
        if self.high <= self.low:
            raise ValueError(f"high ({self.high}) must be greater than low ({self.low})")
        return self

    @property
    def uses_discard(self) -> bool:
        """Whether the range is derived from sample percentiles."""
        return self.discard_fraction is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BinningConfig":
        """Create a config from a dictionary, ignoring private ``_`` keys."""
        return cls(**{k: v for k, v in data.items() if not k.startswith("_")})

    @classmethod
    def from_yaml(cls, path: Path) -> "BinningConfig":
        """Load a binning configuration from a YAML file.

        Args:
            path: Path to the YAML file.

        Returns:
            Validated BinningConfig.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValidationError: If the configuration is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Binning configuration not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        logger.debug(f"Loaded binning configuration from {path}")
        return cls.from_dict(data)

    def to_yaml(self, path: Path) -> None:
        """Save the configuration to a YAML file, omitting unset fields."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )
