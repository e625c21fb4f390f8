import math

import pytest
pytest.importorskip("hist")
pytest.importorskip("vector")
from src.analysis.config import ConfigurationError
from src.analysis.driver import AnalysisSummary, analyze_event, analyze_events
from src.analysis.histogram import MassHistogram
from src.analysis.particles import Event, Particle
from src.analysis.reconstruction import JetReconstructor, LeptonPairReconstructor
from src.generation.base import EventGenerator


def _muon(E, px, py, pz, pid=13, final=True):
    return Particle(E=E, px=px, py=py, pz=pz, pid=pid, is_final=final)


class ScriptedGenerator(EventGenerator):
    """Replays a fixed list of events; ``None`` marks a failed generation."""

    def __init__(self, events):
        self.events = list(events)
        self.calls = 0
        self.extracted = 0
        self._current = None

    def advance(self):
        self.calls += 1
        if not self.events:
            return False
        self._current = self.events.pop(0)
        return self._current is not None

    def event(self):
        self.extracted += 1
        return list(self._current)


def _z_event():
    # mu- and mu+ back to back, m = 90
    return [
        _muon(45.0, 45.0, 0.0, 0.0, pid=13),
        _muon(45.0, -45.0, 0.0, 0.0, pid=-13),
    ]


def test_dimuon_events_fill_histogram():
    gen = ScriptedGenerator([_z_event(), _z_event()])
    h = MassHistogram(100, 0.0, 100.0)

    summary = analyze_events(gen, LeptonPairReconstructor(13), h, n_events=2)

    assert summary.n_filled == 2
    assert h.counts[90] == 2
    assert summary.n_generated == 2


def test_single_lepton_event_leaves_histogram_untouched():
    lone = [_muon(45.0, 45.0, 0.0, 0.0), _muon(30.0, 0.0, 30.0, 0.0, pid=211)]
    gen = ScriptedGenerator([lone])
    h = MassHistogram(100, 0.0, 100.0)

    summary = analyze_events(gen, LeptonPairReconstructor(13), h, n_events=1)

    assert h.entries == 0
    assert h.n_invalid == 0
    assert summary.n_insufficient == 1
    assert summary.n_filled == 0


def test_generation_failures_are_skipped_not_retried():
    gen = ScriptedGenerator([None, _z_event(), None])
    h = MassHistogram(100, 0.0, 100.0)

    summary = analyze_events(gen, LeptonPairReconstructor(13), h, n_events=5)

    # Fixed iteration count even though the script runs dry
    assert gen.calls == 5
    assert gen.extracted == 1
    assert summary.n_generation_failures == 4
    assert summary.n_filled == 1
    assert summary.n_skipped == 4


def test_no_particles_carry_over_between_events():
    # First event has one muon, second has one muon. Combined they would
    # make a pair; analysed separately neither event fills.
    first = [_muon(45.0, 45.0, 0.0, 0.0, pid=13)]
    second = [_muon(45.0, -45.0, 0.0, 0.0, pid=-13)]
    gen = ScriptedGenerator([first, second])
    h = MassHistogram(100, 0.0, 100.0)

    summary = analyze_events(gen, LeptonPairReconstructor(13), h, n_events=2)

    assert h.entries == 0
    assert summary.n_insufficient == 2


def test_jet_strategy_end_to_end():
    # Two narrow sprays back to back in phi, plus a decayed parent that
    # must not be clustered.
    event = [
        Particle(E=91.0, px=0.0, py=0.0, pz=0.0, pid=23, is_final=False),
        Particle(E=40.0, px=40.0, py=0.0, pz=0.0, pid=211, is_final=True),
        Particle(E=5.0, px=5.0, py=0.0, pz=0.0, pid=22, is_final=True),
        Particle(E=45.0, px=-45.0, py=0.0, pz=0.0, pid=-211, is_final=True),
    ]
    gen = ScriptedGenerator([event])
    h = MassHistogram(100, 0.0, 100.0)

    summary = analyze_events(gen, JetReconstructor(radius=0.4), h, n_events=1)

    assert summary.n_filled == 1
    assert h.counts[90] == 1


def test_jet_strategy_needs_two_jets():
    event = [Particle(E=40.0, px=40.0, py=0.0, pz=0.0, pid=211, is_final=True)]
    h = MassHistogram(100, 0.0, 100.0)
    summary = analyze_events(ScriptedGenerator([event]), JetReconstructor(), h, n_events=1)
    assert summary.n_insufficient == 1
    assert h.entries == 0


def test_nan_mass_counted_separately():
    class Spacelike:
        def reconstruct(self, particles):
            return [
                _muon(1.0, 5.0, 0.0, 0.0),
                _muon(1.0, 5.0, 0.0, 0.0),
            ]

    h = MassHistogram(10, 0.0, 10.0)
    summary = AnalysisSummary()
    mass = analyze_event(Event(), Spacelike(), h, summary)

    assert math.isnan(mass)
    assert summary.n_invalid_mass == 1
    assert summary.n_filled == 0
    assert h.n_invalid == 1
    assert h.entries == 0


def test_zero_events_and_negative_count():
    h = MassHistogram(10, 0.0, 10.0)
    summary = analyze_events(ScriptedGenerator([]), LeptonPairReconstructor(), h, n_events=0)
    assert summary.as_dict()["n_requested"] == 0

    with pytest.raises(ConfigurationError):
        analyze_events(ScriptedGenerator([]), LeptonPairReconstructor(), h, n_events=-1)


def test_progress_logging(caplog):
    caplog.set_level("INFO")
    gen = ScriptedGenerator([_z_event()] * 4)
    h = MassHistogram(100, 0.0, 100.0)
    analyze_events(gen, LeptonPairReconstructor(), h, n_events=4, progress_every=2)
    assert "[2/4]" in caplog.text
    assert "[4/4]" in caplog.text
