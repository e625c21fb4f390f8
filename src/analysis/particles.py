"""
Particle and event records handed from the generator to the analysis.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

import vector

from src.analysis.physics import azimuth, pseudorapidity, transverse_momentum


@dataclass(frozen=True)
class Particle:
    """One entry of a generated event record (GeV, c = 1)."""

    E: float
    px: float
    py: float
    pz: float
    pid: int
    is_final: bool

    @classmethod
    def from_record(cls, record):
        """
        Copy a particle out of a generator record.

        Accepts anything exposing ``e()/px()/py()/pz()/id()/isFinal()``
        (Pythia 8 particles) or plain ``E/px/py/pz/pid/is_final`` attributes.
        """
        if isinstance(record, cls):
            return record
        if callable(getattr(record, "isFinal", None)):
            return cls(
                E=float(record.e()),
                px=float(record.px()),
                py=float(record.py()),
                pz=float(record.pz()),
                pid=int(record.id()),
                is_final=bool(record.isFinal()),
            )
        return cls(
            E=float(record.E),
            px=float(record.px),
            py=float(record.py),
            pz=float(record.pz),
            pid=int(record.pid),
            is_final=bool(record.is_final),
        )

    @property
    def pt(self):
        return float(transverse_momentum(self.px, self.py))

    @property
    def eta(self):
        return float(pseudorapidity(self.px, self.py, self.pz))

    @property
    def phi(self):
        return float(azimuth(self.px, self.py))

    def p4(self):
        """The four-momentum as a ``vector`` Momentum4D object."""
        return vector.obj(px=self.px, py=self.py, pz=self.pz, E=self.E)


class Event:
    """
    Ordered, read-only particle record of a single collision.

    A new Event is built for every generated collision and dropped once
    it has been analysed; nothing in it survives into the next iteration.
    """

    __slots__ = ("_particles",)

    def __init__(self, particles: Iterable[Particle] = ()):
        self._particles: Tuple[Particle, ...] = tuple(particles)

    @classmethod
    def from_records(cls, records):
        return cls(Particle.from_record(r) for r in records)

    def __len__(self):
        return len(self._particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)

    def __getitem__(self, index):
        return self._particles[index]

    def __repr__(self):
        return f"Event(n_particles={len(self._particles)})"

    @property
    def particles(self):
        return self._particles
