"""
Fixed-range invariant-mass histogram.

A thin wrapper around ``hist.Hist`` with integer storage and flow bins.
NaN values never reach the underlying histogram: they are counted in
``n_invalid`` so that in-range + underflow + overflow always equals the
number of accepted fills.
"""

import logging
import math

import hist
import numpy as np
from hist import Hist

from src.analysis.config import ConfigurationError

logger = logging.getLogger(__name__)


class MassHistogram:
    def __init__(self, nbins, xmin, xmax, name="mass", label=r"$m\,\mathrm{[GeV]}$"):
        if isinstance(nbins, bool) or int(nbins) != nbins or nbins <= 0:
            raise ConfigurationError(f"Histogram needs a positive bin count, got {nbins!r}")
        if not (math.isfinite(xmin) and math.isfinite(xmax)) or xmax <= xmin:
            raise ConfigurationError(
                f"Histogram range [{xmin}, {xmax}) is empty or not finite"
            )

        self.name = name
        axis = hist.axis.Regular(
            int(nbins), float(xmin), float(xmax),
            name=name, label=label, underflow=True, overflow=True,
        )
        self.hist = Hist(axis, storage=hist.storage.Int64())
        self.n_invalid = 0

    @classmethod
    def from_config(cls, hist_config, name="mass", label=r"$m\,\mathrm{[GeV]}$"):
        return cls(hist_config["nbins"], hist_config["min"], hist_config["max"], name=name, label=label)

    def fill(self, value):
        """
        Count one value. Returns False (and counts it as invalid) for NaN.
        """
        value = float(value)
        if math.isnan(value):
            self.n_invalid += 1
            logger.warning("Dropping NaN value from histogram %r", self.name)
            return False
        self.hist.fill(value)
        return True

    @property
    def axis(self):
        return self.hist.axes[0]

    @property
    def nbins(self):
        return self.axis.size

    @property
    def edges(self):
        return self.axis.edges

    @property
    def centers(self):
        return self.axis.centers

    @property
    def counts(self):
        return np.asarray(self.hist.values(), dtype=np.int64)

    @property
    def underflow(self):
        return int(self.hist.view(flow=True)[0])

    @property
    def overflow(self):
        return int(self.hist.view(flow=True)[-1])

    @property
    def entries(self):
        """All accepted fills, flow bins included."""
        return int(np.sum(self.hist.view(flow=True)))

    def mean(self):
        """Mean of the in-range distribution from bin centres."""
        counts = self.counts
        total = counts.sum()
        if total == 0:
            return float("nan")
        return float(np.sum(self.centers * counts) / total)

    def rms(self):
        counts = self.counts
        total = counts.sum()
        if total == 0:
            return float("nan")
        mean = np.sum(self.centers * counts) / total
        return float(np.sqrt(np.sum(((self.centers - mean) ** 2) * counts) / total))

    def compatible(self, other):
        return (
            self.nbins == other.nbins
            and np.array_equal(self.edges, other.edges)
        )

    def merge(self, other):
        """Add the counts of another histogram with identical binning."""
        if not self.compatible(other):
            raise ValueError("Cannot merge histograms with different binning")
        self.hist += other.hist
        self.n_invalid += other.n_invalid
        return self

    def __iadd__(self, other):
        return self.merge(other)

    def __repr__(self):
        return (
            f"MassHistogram({self.name!r}, nbins={self.nbins}, "
            f"range=[{self.edges[0]}, {self.edges[-1]}), entries={self.entries}, "
            f"invalid={self.n_invalid})"
        )
