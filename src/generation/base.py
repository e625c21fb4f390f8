"""
Interface for event sources feeding the analysis loop.
"""

from abc import ABC, abstractmethod


class EventGenerator(ABC):
    """
    One collision per ``advance()`` call.

    ``initialize()`` is called once before the loop; after a successful
    ``advance()`` the particles of that collision are available from
    ``event()``. A failed ``advance()`` is not fatal: the caller just
    moves on to the next attempt.
    """

    def initialize(self):
        """Apply the configuration. Called once, before the first event."""

    @abstractmethod
    def advance(self):
        """Generate the next event. Returns True on success."""

    @abstractmethod
    def event(self):
        """Particle records of the last successfully generated event."""

    def close(self):
        """Release any resources held by the generator."""

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
