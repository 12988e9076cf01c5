"""Shared fixtures: an in-memory stand-in for an uproot file and event builders."""

import pytest

from ntuplereader.reader_config import (
    JET_BRANCHES,
    JET_JEC_DOWN_BRANCHES,
    JET_JEC_UP_BRANCHES,
    LEPTON_BRANCHES,
    MET_BRANCHES,
    MET_JEC_DOWN_BRANCHES,
    MET_JEC_UP_BRANCHES,
    NUM_PV_BRANCH,
    RAW_WEIGHT_BRANCH,
)


# ---------------------------------------------------------------------------
# Fake storage handle
# ---------------------------------------------------------------------------

class FakeTree:
    """Mimics the parts of an uproot TTree the reader uses."""

    def __init__(self, columns, num_entries):
        self._columns = columns
        self.num_entries = num_entries
        self.requests = []

    def keys(self):
        return list(self._columns)

    def arrays(self, expressions, entry_start=None, entry_stop=None, library="ak"):
        self.requests.append((entry_start, entry_stop))
        return {name: self._columns[name][entry_start:entry_stop] for name in expressions}


class FakeSource:
    """Mimics an uproot directory: ``name in source`` and ``source[name]``."""

    file_path = "fake.root"

    def __init__(self, trees):
        self.trees = trees

    def __contains__(self, name):
        return name in self.trees

    def __getitem__(self, name):
        return self.trees[name]


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------

def _event(leptons=(), jets=(), jets_up=None, jets_down=None, met=(10.0, 0.0),
           met_up=None, met_down=None, weight=1.0, npv=20):
    """Event description.  Leptons are (flavour, pt, eta, phi, iso) tuples,
    jets are (pt, eta, phi, btag, flavour) tuples."""
    return {
        "leptons": list(leptons),
        "jets": list(jets),
        "jets_up": list(jets if jets_up is None else jets_up),
        "jets_down": list(jets if jets_down is None else jets_down),
        "met": met,
        "met_up": met if met_up is None else met_up,
        "met_down": met if met_down is None else met_down,
        "weight": weight,
        "npv": npv,
    }


_LEPTON_FIELDS = ("flavour", "pt", "eta", "phi", "iso")
_JET_FIELDS = ("pt", "eta", "phi", "btag", "flavour")


def _columns(events, is_mc=True):
    """Transpose event descriptions into branch -> per-entry values."""
    columns = {}

    def block(branches, fields, key):
        columns[branches["size"]] = [len(ev[key]) for ev in events]
        for i, name in enumerate(fields):
            columns[branches[name]] = [[obj[i] for obj in ev[key]] for ev in events]

    def met(branches, key):
        columns[branches["pt"]] = [ev[key][0] for ev in events]
        columns[branches["phi"]] = [ev[key][1] for ev in events]

    block(LEPTON_BRANCHES, _LEPTON_FIELDS, "leptons")
    block(JET_BRANCHES, _JET_FIELDS, "jets")
    met(MET_BRANCHES, "met")
    columns[NUM_PV_BRANCH] = [ev["npv"] for ev in events]
    if is_mc:
        block(JET_JEC_UP_BRANCHES, _JET_FIELDS, "jets_up")
        block(JET_JEC_DOWN_BRANCHES, _JET_FIELDS, "jets_down")
        met(MET_JEC_UP_BRANCHES, "met_up")
        met(MET_JEC_DOWN_BRANCHES, "met_down")
        columns[RAW_WEIGHT_BRANCH] = [ev["weight"] for ev in events]
    return columns


def _tree(events, is_mc=True):
    return FakeTree(_columns(events, is_mc), len(events))


class CountingReweighter:
    """Reweighting model returning fixed factors and recording every call.

    `factors` maps jet pT to a factor; other jets get `default`.
    """

    def __init__(self, default=1.1, factors=None):
        self.default = default
        self.factors = factors or {}
        self.calls = []

    def calculate_jet_weight(self, jet, syst_type, syst_direction):
        self.calls.append((jet, syst_type, syst_direction))
        return self.factors.get(jet.pt, self.default)


@pytest.fixture
def make_event():
    return _event


@pytest.fixture
def make_columns():
    return _columns


@pytest.fixture
def make_tree():
    return _tree


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def reweighter():
    return CountingReweighter()


@pytest.fixture
def counting_reweighter_cls():
    return CountingReweighter
