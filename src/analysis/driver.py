"""
Event loop: generator -> particles -> reconstructor -> mass -> histogram.
"""

import logging
import math
from dataclasses import asdict, dataclass

from src.analysis.config import ConfigurationError
from src.analysis.particles import Event
from src.analysis.physics import pair_invariant_mass

logger = logging.getLogger(__name__)


@dataclass
class AnalysisSummary:
    n_requested: int = 0
    n_generated: int = 0
    n_generation_failures: int = 0
    n_insufficient: int = 0
    n_invalid_mass: int = 0
    n_filled: int = 0

    @property
    def n_skipped(self):
        return self.n_generation_failures + self.n_insufficient + self.n_invalid_mass

    def as_dict(self):
        return asdict(self)


def analyze_event(event, reconstructor, histogram, summary):
    """
    Analyse one generated event and fill at most one histogram entry.

    Returns the invariant mass of the two leading objects, or None when
    the event has fewer than two of them.
    """
    objects = reconstructor.reconstruct(event)
    if len(objects) < 2:
        summary.n_insufficient += 1
        logger.debug("Only %d object(s) reconstructed; no fill", len(objects))
        return None

    mass = pair_invariant_mass(objects[0], objects[1])
    if math.isnan(mass):
        summary.n_invalid_mass += 1
    if histogram.fill(mass):
        summary.n_filled += 1
    return mass


def analyze_events(generator, reconstructor, histogram, n_events, progress_every=0):
    """
    Run the analysis over a fixed number of generator calls.

    Parameters
    ----------
    generator : EventGenerator
        Already initialised event source exposing ``advance()`` and ``event()``.
    reconstructor : Reconstructor
        Strategy turning particles into leading objects.
    histogram : MassHistogram
        Accumulator owned by the caller; filled in place.
    n_events : int
        Number of iterations. Failed or empty iterations are not retried.
    progress_every : int
        Log progress every this many iterations (0 disables).

    Returns
    -------
    AnalysisSummary
    """
    if n_events < 0:
        raise ConfigurationError(f"Number of events must be >= 0, got {n_events}")

    summary = AnalysisSummary(n_requested=n_events)

    for i in range(n_events):
        if not generator.advance():
            summary.n_generation_failures += 1
            logger.debug("Generation failed for iteration %d; skipping", i)
        else:
            summary.n_generated += 1
            event = Event.from_records(generator.event())
            analyze_event(event, reconstructor, histogram, summary)

        if progress_every and (i + 1) % progress_every == 0:
            logger.info(
                "[%d/%d] events processed, %d filled", i + 1, n_events, summary.n_filled
            )

    logger.info(
        "Finished %d iterations: %d filled, %d generation failures, "
        "%d with < 2 objects, %d invalid masses",
        n_events,
        summary.n_filled,
        summary.n_generation_failures,
        summary.n_insufficient,
        summary.n_invalid_mass,
    )
    return summary
