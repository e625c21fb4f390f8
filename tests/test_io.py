import pytest
ak = pytest.importorskip("awkward")
pytest.importorskip("uproot")
pytest.importorskip("vector")
from src.analysis import io
from src.analysis.particles import Particle


def _event_arrays():
    return ak.Array(
        {
            "part_E": [[45.0, 45.0, 91.0], [30.0]],
            "part_px": [[45.0, -45.0, 0.0], [0.0]],
            "part_py": [[0.0, 0.0, 0.0], [30.0]],
            "part_pz": [[0.0, 0.0, 0.0], [0.0]],
            "part_pid": [[13, -13, 23], [22]],
            "part_isFinal": [[True, True, False], [True]],
        }
    )


class FakeTree:
    # A TTree holding the per-event particle branches
    classname = "TTree"

    def __init__(self, key):
        self.key = key

    def arrays(self, branches, library="ak"):
        assert library == "ak"
        return _event_arrays()[branches]


class FakeRootFile:
    # Mimics an open uproot file: recursive classnames() with cycles
    def __init__(self, classnames, file_path="events.root"):
        self._classnames = classnames
        self.file_path = file_path

    def classnames(self):
        return dict(self._classnames)

    def __getitem__(self, key):
        assert self._classnames[key] == "TTree"
        return FakeTree(key)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


LAYOUTS = {
    "named_among_others": ({"events;1": "TTree", "meta;1": "TTree"}, None, "events;1"),
    "explicit_name": ({"events;1": "TTree", "meta;1": "TTree"}, "meta", "meta;1"),
    "only_tree": ({"particles;1": "TTree", "info;1": "TNamed"}, None, "particles;1"),
    "nested": ({"dir1;1": "TDirectory", "dir1/events;1": "TTree"}, None, "dir1/events;1"),
    "shallowest_wins": (
        {"dir1/events;1": "TTree", "events;1": "TTree", "dir1;1": "TDirectory"},
        None,
        "events;1",
    ),
    "highest_cycle": ({"events;2": "TTree", "events;1": "TTree"}, None, "events;2"),
}


@pytest.fixture(params=sorted(LAYOUTS))
def layout(request):
    classnames, name, expected = LAYOUTS[request.param]
    return FakeRootFile(classnames), name, expected


def test_find_tree_resolves_layout(layout):
    file, name, expected = layout
    tree = io._find_tree(file) if name is None else io._find_tree(file, name)
    assert tree.key == expected


def test_load_events_reads_particle_branches(layout, monkeypatch):
    file, name, _ = layout
    monkeypatch.setattr(io.uproot, "open", lambda filename: file)

    arrays = io.load_events("events.root", tree=name)
    assert arrays.fields == io.DEFAULT_BRANCHES
    assert ak.to_list(arrays["part_pid"]) == [[13, -13, 23], [22]]


@pytest.mark.parametrize(
    "classnames",
    [
        {},
        {"info;1": "TNamed"},
        {"meta;1": "TTree", "truth;1": "TTree"},
    ],
)
def test_find_tree_raises_without_single_candidate(classnames):
    with pytest.raises(RuntimeError, match="No TTree named 'events'"):
        io._find_tree(FakeRootFile(classnames))


def test_root_event_source_replays_events_in_order(monkeypatch):
    monkeypatch.setattr(io, "load_events", lambda *args, **kwargs: _event_arrays())

    source = io.RootEventSource("events.root")
    source.initialize()
    assert len(source) == 2

    assert source.advance()
    first = source.event()
    assert [p.pid for p in first] == [13, -13, 23]
    assert first[2] == Particle(E=91.0, px=0.0, py=0.0, pz=0.0, pid=23, is_final=False)

    assert source.advance()
    assert [p.pid for p in source.event()] == [22]

    # Exhausted input behaves like a generation failure
    assert not source.advance()
    source.close()


def test_root_event_source_requires_initialize():
    with pytest.raises(RuntimeError):
        io.RootEventSource("events.root").advance()
