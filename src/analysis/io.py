"""
I/O utilities for replaying generated events stored in ROOT files with uproot
"""

import logging

import awkward as ak
import uproot

from src.analysis.particles import Particle
from src.generation.base import EventGenerator

logger = logging.getLogger(__name__)

DEFAULT_TREE = "events"

# Jagged per-event particle branches, in the order of Particle's fields.
DEFAULT_BRANCHES = [
    "part_E",
    "part_px",
    "part_py",
    "part_pz",
    "part_pid",
    "part_isFinal",
]


def _tree_keys(file):
    """Every TTree in ``file``, at any depth, keyed by its path without cycle."""
    trees = {}
    for key, classname in file.classnames().items():
        if classname != "TTree":
            continue
        # uproot lists the highest cycle first
        trees.setdefault(key.rsplit(";", 1)[0], key)
    return trees


def _find_tree(file, name=DEFAULT_TREE):
    """
    Locate the particle TTree in an open ROOT file.

    A tree whose full path or base name equals ``name`` is used, the
    shallowest one if several directories hold it. A file with a single
    TTree is accepted whatever that tree is called.
    """
    trees = _tree_keys(file)
    matches = sorted(
        (path for path in trees if name in (path, path.rsplit("/", 1)[-1])),
        key=lambda path: path.count("/"),
    )
    if matches:
        return file[trees[matches[0]]]

    if len(trees) == 1:
        path, key = next(iter(trees.items()))
        logger.info("No TTree named %r, using the only tree %r", name, path)
        return file[key]

    raise RuntimeError(
        f"No TTree named {name!r} in file {file.file_path} "
        f"(trees found: {sorted(trees) or 'none'})"
    )


def load_events(filename, branches=None, tree=None):
    """
    Load the particle branches of every event into an Awkward Array.
    Automatically detects the correct TTree name unless one is given.
    """
    if branches is None:
        branches = DEFAULT_BRANCHES

    with uproot.open(filename) as f:
        t = _find_tree(f, tree or DEFAULT_TREE)
        arrays = t.arrays(branches, library="ak")

    logger.info("Loaded %d events from %s", len(arrays), filename)
    return arrays


def to_particles(arrays, branches=None):
    """
    Zip the flat branches into one jagged array of particle records
    with the field names used by ``Particle``.
    """
    if branches is None:
        branches = DEFAULT_BRANCHES
    fields = ["E", "px", "py", "pz", "pid", "is_final"]
    return ak.zip({field: arrays[branch] for field, branch in zip(fields, branches)})


class RootEventSource(EventGenerator):
    """
    Replays pre-generated events from a ROOT file, one per ``advance()``.

    Once the file is exhausted every further ``advance()`` fails, which the
    analysis loop treats like any other generation failure.
    """

    def __init__(self, filename, tree=None, branches=None):
        self.filename = filename
        self.tree = tree
        self.branches = branches or DEFAULT_BRANCHES
        self._particles = None
        self._index = -1

    def initialize(self):
        arrays = load_events(self.filename, branches=self.branches, tree=self.tree)
        self._particles = to_particles(arrays, self.branches)
        self._index = -1

    def __len__(self):
        return 0 if self._particles is None else len(self._particles)

    def advance(self):
        if self._particles is None:
            raise RuntimeError("RootEventSource.initialize() must be called first")
        if self._index + 1 >= len(self._particles):
            return False
        self._index += 1
        return True

    def event(self):
        return [
            Particle(
                E=float(r["E"]),
                px=float(r["px"]),
                py=float(r["py"]),
                pz=float(r["pz"]),
                pid=int(r["pid"]),
                is_final=bool(r["is_final"]),
            )
            for r in ak.to_list(self._particles[self._index])
        ]

    def close(self):
        self._particles = None
