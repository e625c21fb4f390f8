"""
Pythia 8 event generation for Z/gamma* production at the LHC.

The Python bindings ship in the ``pythia8mc`` distribution and are
imported when the generator is initialised, so the rest of the package
(and its tests) work without them.
"""

import logging

from src.generation.base import EventGenerator

logger = logging.getLogger(__name__)

DEFAULT_ECM = 13000.0

PROCESS = "WeakSingleBoson:ffbar2gmZ = on"

# Allowed Z (23) and photon (22) decay products per analysis channel.
DECAY_PRODUCTS = {
    "dijet": "1 2 3 4 5",
    "dimuon": "-13 13",
}


def channel_settings(channel, ecm=DEFAULT_ECM, seed=None):
    """
    Pythia ``readString`` commands for one analysis channel.

    Z/gamma* production in f fbar collisions with every boson decay
    switched off except those into the channel's final state.
    """
    try:
        products = DECAY_PRODUCTS[channel]
    except KeyError:
        raise ValueError(
            f"Unknown channel {channel!r}; expected one of {sorted(DECAY_PRODUCTS)}"
        ) from None

    settings = [PROCESS]
    for boson in (23, 22):
        settings.append(f"{boson}:onMode = off")
        settings.append(f"{boson}:onIfAny = {products}")
    settings.append(f"Beams:eCM = {float(ecm)}")
    if seed is not None:
        settings.append("Random:setSeed = on")
        settings.append(f"Random:seed = {int(seed)}")
    return settings


class PythiaGenerator(EventGenerator):
    def __init__(self, settings, quiet=True):
        self.settings = list(settings)
        self.quiet = quiet
        self._pythia = None

    @classmethod
    def for_channel(cls, channel, ecm=DEFAULT_ECM, seed=None, quiet=True):
        return cls(channel_settings(channel, ecm=ecm, seed=seed), quiet=quiet)

    def initialize(self):
        import pythia8

        self._pythia = pythia8.Pythia("", not self.quiet)
        settings = self.settings
        if self.quiet:
            settings = ["Print:quiet = on"] + settings
        for setting in settings:
            if not self._pythia.readString(setting):
                raise ValueError(f"Pythia rejected setting {setting!r}")
        if not self._pythia.init():
            raise RuntimeError("Pythia initialisation failed")
        logger.info("Pythia initialised with %d settings", len(self.settings))

    def advance(self):
        if self._pythia is None:
            raise RuntimeError("PythiaGenerator.initialize() must be called first")
        return bool(self._pythia.next())

    def event(self):
        record = self._pythia.event
        return [record[j] for j in range(record.size())]

    def close(self):
        if self._pythia is not None:
            if not self.quiet:
                self._pythia.stat()
            self._pythia = None
