"""
Histogram export: PNG figure plus the raw counts and edges as NumPy arrays.
"""

import logging
import os
from dataclasses import dataclass

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlotOptions:
    name: str = "DijetMassDist"
    title: str = "Boson Invariant Mass Distributions"
    xlabel: str = "m (GeV)"
    ylabel: str = "events/bin"
    style: str = "h"
    color: str = "indigo"
    log_y: bool = True
    log_x: bool = False

    @classmethod
    def from_config(cls, plot_config):
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in plot_config.items() if k in known})


def export_histogram(histogram, options, outdir):
    """
    Render a finished MassHistogram and save it to ``outdir``.

    Style ``"h"`` draws a step histogram with Poisson error bars,
    ``"e"`` error bars only and ``"l"`` a line through the bin centres.

    Returns the path of the written figure.
    """
    os.makedirs(outdir, exist_ok=True)

    counts = histogram.counts
    edges = histogram.edges

    # Bin centres and statistical (Poisson) errors
    centers = 0.5 * (edges[:-1] + edges[1:])
    errors = np.sqrt(counts)

    np.save(os.path.join(outdir, f"{options.name}_counts.npy"), counts)
    np.save(os.path.join(outdir, f"{options.name}_edges.npy"), edges)

    fig, ax = plt.subplots()
    if options.style == "h":
        ax.step(edges[:-1], counts, where="post", color=options.color, label="Events")
    elif options.style == "l":
        ax.plot(centers, counts, color=options.color, label="Events")
    if options.style in ("h", "e"):
        ax.errorbar(
            centers,
            counts,
            yerr=errors,
            fmt=".",
            color=options.color,
            markersize=2,
            linewidth=0.5,
            label="Statistical errors",
        )

    # A log axis with no positive entries would raise in matplotlib.
    if options.log_y and counts.sum() > 0:
        ax.set_yscale("log")
    if options.log_x and edges[0] > 0:
        ax.set_xscale("log")

    ax.set_xlim(edges[0], edges[-1])
    ax.set_xlabel(options.xlabel)
    ax.set_ylabel(options.ylabel)
    ax.set_title(options.title)
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()

    path = os.path.join(outdir, f"{options.name}.png")
    fig.savefig(path)
    plt.close(fig)

    logger.info("Saved %s", path)
    return path
