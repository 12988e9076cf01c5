"""Lightweight configuration for the ntuple reader.

Keep this module dependency-free: it only holds the column-name contract
with the ntuples and a few tunable defaults.
"""

# Maximum number of objects of one kind (leptons, jets) per event that the
# decode buffers can hold.
MAX_OBJECTS = 64

# Number of entries fetched from a tree in one uproot request.
DEFAULT_CHUNK_SIZE = 1000

# Default tree name when none is given on the command line.
DEFAULT_TREE = "Vars"

# --- Column names (single source of truth for branch names) -----------------
#
# Object blocks map a field of the physics object to its branch.  The "size"
# entry is the per-event counter of the block.
LEPTON_BRANCHES = {
    "size": "nlepton",
    "flavour": "lept_flav",
    "pt": "lept_pt",
    "eta": "lept_eta",
    "phi": "lept_phi",
    "iso": "lept_iso",
}

JET_BRANCHES = {
    "size": "njets",
    "pt": "jet_pt",
    "eta": "jet_eta",
    "phi": "jet_phi",
    "btag": "jet_btagdiscri",
    "flavour": "jet_flav",
}

JET_JEC_UP_BRANCHES = {
    "size": "jesup_njets",
    "pt": "jet_jesup_pt",
    "eta": "jet_jesup_eta",
    "phi": "jet_jesup_phi",
    "btag": "jet_jesup_btagdiscri",
    "flavour": "jet_jesup_flav",
}

JET_JEC_DOWN_BRANCHES = {
    "size": "jesdown_njets",
    "pt": "jet_jesdown_pt",
    "eta": "jet_jesdown_eta",
    "phi": "jet_jesdown_phi",
    "btag": "jet_jesdown_btagdiscri",
    "flavour": "jet_jesdown_flav",
}

MET_BRANCHES = {"pt": "met_pt", "phi": "met_phi"}
MET_JEC_UP_BRANCHES = {"pt": "met_jesup_pt", "phi": "met_jesup_phi"}
MET_JEC_DOWN_BRANCHES = {"pt": "met_jesdown_pt", "phi": "met_jesdown_phi"}

NUM_PV_BRANCH = "nvertex"
RAW_WEIGHT_BRANCH = "evtweight"

# Integer-valued fields; everything else is decoded as float64.
INTEGER_FIELDS = {"size", "flavour"}

# --- B-tag shape reweighting --------------------------------------------------

BTAG_CORRECTION_NAME = "deepJet_shape"

# Calibrated acceptance of the shape scale factors.
BTAG_PT_RANGE = (20.0, 1000.0)
BTAG_ETA_MAX = 2.5

# Systematic-name suffixes used inside the correctionlib payload.
BTAG_SYST_NAMES = {
    "JEC": "jes",
    "BTAG_LF": "lf",
    "BTAG_HF": "hf",
    "BTAG_HF_STATS1": "hfstats1",
    "BTAG_HF_STATS2": "hfstats2",
    "BTAG_LF_STATS1": "lfstats1",
    "BTAG_LF_STATS2": "lfstats2",
    "BTAG_CERR1": "cferr1",
    "BTAG_CERR2": "cferr2",
}
