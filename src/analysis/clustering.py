"""
Anti-kt sequential recombination jet clustering.

Distances (Cacciari, Salam, Soyez, JHEP 0804:063):

    d_ij = min(pT_i^-2, pT_j^-2) * dR_ij^2 / R^2
    d_iB = pT_i^-2

with dR measured in pseudorapidity and azimuth. At every step the
smallest distance wins: a pair is merged (E-scheme, four-momenta summed)
or a single object is promoted to a final jet. Each slot remembers its
nearest later neighbour, so a step only recomputes the rows that pointed
at a merged or retired slot and the whole run is O(N^2). A merged object
reuses the lower of the two slots and ``np.argmin`` picks the first
minimum, so equal pair distances resolve towards the lowest original
index. A pair equal to the smallest beam distance is not merged.
"""

import logging

import numpy as np
import vector

from src.analysis.config import ConfigurationError
from src.analysis.physics import azimuth, delta_r2, pseudorapidity, transverse_momentum

logger = logging.getLogger(__name__)

DEFAULT_RADIUS = 0.4


def _kinematics(p4):
    """(kt, eta, phi) for rows of an (n, 4) array of (E, px, py, pz)."""
    px, py, pz = p4[..., 1], p4[..., 2], p4[..., 3]
    pt = transverse_momentum(px, py)
    with np.errstate(divide="ignore"):
        kt = 1.0 / pt**2
    return kt, pseudorapidity(px, py, pz), azimuth(px, py)


def _pair_distance(kt_a, eta_a, phi_a, kt_b, eta_b, phi_b, inv_r2):
    finite = np.isfinite(kt_a) & np.isfinite(kt_b)
    with np.errstate(invalid="ignore"):
        d = np.minimum(kt_a, kt_b) * delta_r2(eta_a, phi_a, eta_b, phi_b) * inv_r2
    # Objects along the beam axis never merge.
    return np.where(finite, d, np.inf)


def cluster_antikt(particles, radius=DEFAULT_RADIUS, ptmin=0.0):
    """
    Cluster particles into jets with the anti-kt algorithm.

    Parameters
    ----------
    particles : sequence
        Objects exposing ``E``, ``px``, ``py`` and ``pz``.
    radius : float
        Jet radius parameter R, must be positive.
    ptmin : float
        Jets softer than this are dropped from the result.

    Returns
    -------
    list of vector.MomentumObject4D
        Jets sorted by descending transverse momentum. With ``ptmin = 0``
        every input particle ends up in exactly one jet.
    """
    if radius <= 0:
        raise ConfigurationError(f"Jet radius must be > 0, got {radius}")
    if ptmin < 0:
        raise ConfigurationError(f"Jet ptmin must be >= 0, got {ptmin}")

    n = len(particles)
    if n == 0:
        return []

    p4 = np.array([[p.E, p.px, p.py, p.pz] for p in particles], dtype=float)
    kt, eta, phi = _kinematics(p4)
    inv_r2 = 1.0 / radius**2

    active = np.ones(n, dtype=bool)
    dib = kt.copy()
    # Nearest later neighbour of every slot: nn_dist[k] = min_{j > k} d_kj
    nn_dist = np.full(n, np.inf)
    nn_idx = np.full(n, -1, dtype=int)

    def update_row(k):
        later = np.flatnonzero(active[k + 1:]) + k + 1
        if later.size == 0:
            nn_dist[k], nn_idx[k] = np.inf, -1
            return
        d = _pair_distance(kt[k], eta[k], phi[k], kt[later], eta[later], phi[later], inv_r2)
        m = int(np.argmin(d))
        nn_dist[k], nn_idx[k] = d[m], later[m]

    def retire(k):
        active[k] = False
        dib[k] = np.inf
        nn_dist[k], nn_idx[k] = np.inf, -1

    def refresh_neighbours_of(*slots):
        stale = np.flatnonzero(active & np.isin(nn_idx, slots))
        for k in stale:
            update_row(int(k))

    for k in range(n):
        update_row(k)

    found = []
    n_merges = 0
    while active.any():
        i = int(np.argmin(nn_dist))
        j = int(nn_idx[i])
        b = int(np.argmin(dib))
        if not active[b]:
            # only infinite beam distances are left
            b = int(np.flatnonzero(active)[0])

        if nn_dist[i] < dib[b]:
            p4[i] += p4[j]
            retire(j)
            n_merges += 1

            kt[i], eta[i], phi[i] = _kinematics(p4[i])
            dib[i] = kt[i]
            refresh_neighbours_of(i, j)
            update_row(i)

            earlier = np.flatnonzero(active[:i])
            if earlier.size:
                d = _pair_distance(
                    kt[earlier], eta[earlier], phi[earlier], kt[i], eta[i], phi[i], inv_r2
                )
                closer = (d < nn_dist[earlier]) | (
                    (d == nn_dist[earlier]) & (i < nn_idx[earlier])
                )
                nn_dist[earlier[closer]] = d[closer]
                nn_idx[earlier[closer]] = i
        else:
            found.append(p4[b].copy())
            retire(b)
            refresh_neighbours_of(b)

    jets = [
        vector.obj(px=float(px), py=float(py), pz=float(pz), E=float(E))
        for E, px, py, pz in found
    ]
    jets = [jet for jet in jets if jet.pt >= ptmin]
    jets.sort(key=lambda jet: jet.pt, reverse=True)

    logger.debug(
        "Clustered %d particles into %d jets (%d merges, R=%.2f)",
        n, len(jets), n_merges, radius,
    )
    return jets
