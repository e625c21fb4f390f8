"""
Selection logic for the boson invariant-mass analysis.

This module defines the particle-level filters applied to each event
record before reconstruction. All of them keep the original record
order and never modify their input.
"""

# Neutrinos leave no trace in a detector.
INVISIBLE_PIDS = frozenset({12, 14, 16})


def select_final_state(particles):
    """
    Keep only final-state particles (those not decayed further).
    """
    return tuple(p for p in particles if p.is_final)


def select_species(particles, code):
    """
    Keep particles whose PDG id is +code or -code (particle or antiparticle).
    """
    code = abs(code)
    return tuple(p for p in particles if abs(p.pid) == code)


def select_visible(particles):
    """
    Drop neutrinos.
    """
    return tuple(p for p in particles if abs(p.pid) not in INVISIBLE_PIDS)
