"""
Object reconstruction strategies.

A reconstructor turns the particle record of one event into an ordered
list of physics objects; the analysis combines the first two of them.
Both strategies share the same interface so the event driver does not
need to know which one it is running.
"""

import logging
from abc import ABC, abstractmethod

from src.analysis.clustering import DEFAULT_RADIUS, cluster_antikt
from src.analysis.config import ConfigurationError
from src.analysis.selection import select_final_state, select_species, select_visible

logger = logging.getLogger(__name__)

MUON = 13


class Reconstructor(ABC):
    """Base class for per-event object reconstruction."""

    name = "base"

    @abstractmethod
    def reconstruct(self, particles):
        """
        Build leading physics objects from an event's particles.

        Returns a list of four-momenta ordered from leading to subleading.
        The list may hold fewer than two entries.
        """


class JetReconstructor(Reconstructor):
    """Anti-kt jets built from every final-state particle, leading pT first."""

    name = "jets"

    def __init__(self, radius=DEFAULT_RADIUS, ptmin=0.0, exclude_invisible=False):
        if radius <= 0:
            raise ConfigurationError(f"Jet radius must be > 0, got {radius}")
        if ptmin < 0:
            raise ConfigurationError(f"Jet ptmin must be >= 0, got {ptmin}")
        self.radius = float(radius)
        self.ptmin = float(ptmin)
        self.exclude_invisible = exclude_invisible

    def reconstruct(self, particles):
        inputs = select_final_state(particles)
        if self.exclude_invisible:
            inputs = select_visible(inputs)
        return cluster_antikt(inputs, radius=self.radius, ptmin=self.ptmin)

    def __repr__(self):
        return f"JetReconstructor(radius={self.radius}, ptmin={self.ptmin})"


class LeptonPairReconstructor(Reconstructor):
    """
    First two final-state leptons of species +/-L, in event-record order.

    Later matches are ignored even when they are harder; this is not a
    "two highest-energy leptons" selection.
    """

    name = "leptons"

    def __init__(self, lepton_code=MUON):
        if not lepton_code:
            raise ConfigurationError("Lepton code must be a non-zero PDG id")
        self.lepton_code = abs(int(lepton_code))

    def reconstruct(self, particles):
        leptons = select_species(select_final_state(particles), self.lepton_code)
        return [p.p4() for p in leptons[:2]]

    def __repr__(self):
        return f"LeptonPairReconstructor(lepton_code={self.lepton_code})"


def build_reconstructor(reco_config):
    """Create the reconstructor described by the ``reconstruction`` config section."""
    strategy = reco_config["strategy"]
    if strategy == "jets":
        reconstructor = JetReconstructor(
            radius=reco_config["radius"],
            ptmin=reco_config.get("ptmin", 0.0),
            exclude_invisible=reco_config.get("exclude_invisible", False),
        )
    elif strategy == "leptons":
        reconstructor = LeptonPairReconstructor(lepton_code=reco_config["lepton_code"])
    else:
        raise ConfigurationError(f"Unknown reconstruction strategy {strategy!r}")
    logger.info("Reconstruction: %r", reconstructor)
    return reconstructor
