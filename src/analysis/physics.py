"""
Physics utilities for dijet and dilepton analyses.

This module provides basic four-vector kinematics and invariant mass
calculations using NumPy. Every function works on plain floats as well
as on NumPy arrays of particles.
"""

import numpy as np


def transverse_momentum(px, py):
    """pT = sqrt(px^2 + py^2)."""
    return np.hypot(px, py)


def azimuth(px, py):
    """Azimuthal angle in (-pi, pi]."""
    return np.arctan2(py, px)


def pseudorapidity(px, py, pz):
    """
    Pseudorapidity eta = asinh(pz / pT).

    Particles travelling along the beam axis (pT = 0) get +/- inf,
    or NaN when the momentum vanishes altogether.
    """
    pt = transverse_momentum(px, py)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.arcsinh(pz / pt)


def delta_phi(phi1, phi2):
    """Azimuthal difference wrapped into (-pi, pi]."""
    dphi = np.mod(phi1 - phi2 + np.pi, 2.0 * np.pi) - np.pi
    return np.where(dphi == -np.pi, np.pi, dphi)


def delta_r2(eta1, phi1, eta2, phi2):
    """Squared separation in the (eta, phi) plane."""
    deta = eta1 - eta2
    dphi = delta_phi(phi1, phi2)
    return deta**2 + dphi**2


def invariant_mass(E, px, py, pz):
    """
    Compute invariant mass m = sqrt(E^2 - |p|^2) with c = 1.

    Parameters
    ----------
    E, px, py, pz : float or array-like
        Components of the four-vector(s).

    Returns
    -------
    float or array-like
        Invariant mass values with the same shape as the inputs. A
        space-like vector (E^2 < |p|^2) gives NaN rather than an error,
        so callers decide what to do with it.
    """
    p2 = px**2 + py**2 + pz**2
    m2 = E**2 - p2
    with np.errstate(invalid="ignore"):
        return np.sqrt(m2)


def pair_invariant_mass(first, second):
    """
    Invariant mass of the system made of two four-momenta.

    Both arguments only need ``E``, ``px``, ``py`` and ``pz`` attributes,
    so particles, jets and leptons can be mixed freely.
    """
    return float(
        invariant_mass(
            first.E + second.E,
            first.px + second.px,
            first.py + second.py,
            first.pz + second.pz,
        )
    )
