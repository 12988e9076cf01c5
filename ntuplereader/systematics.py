"""Systematic-variation selectors and the mapping to decoded collections."""

from __future__ import annotations

from enum import Enum


class SystType(Enum):
    """Source of systematic uncertainty.  ``NOMINAL`` means no variation."""

    NOMINAL = "nominal"
    JEC = "jec"
    BTAG_LF = "btag_lf"
    BTAG_HF = "btag_hf"
    BTAG_HF_STATS1 = "btag_hfstats1"
    BTAG_HF_STATS2 = "btag_hfstats2"
    BTAG_LF_STATS1 = "btag_lfstats1"
    BTAG_LF_STATS2 = "btag_lfstats2"
    BTAG_CERR1 = "btag_cerr1"
    BTAG_CERR2 = "btag_cerr2"


class SystDirection(Enum):
    UP = "up"
    DOWN = "down"


class Variant(Enum):
    """Which precomputed jet/MET collection an accessor should return."""

    NOMINAL = "nominal"
    JEC_UP = "jec_up"
    JEC_DOWN = "jec_down"


def normalize_selector(syst_type: SystType, direction: SystDirection) -> tuple[SystType, SystDirection]:
    """Return the effective ``(type, direction)`` pair.

    A null variation only exists in the up direction.
    """
    if syst_type is SystType.NOMINAL:
        return syst_type, SystDirection.UP
    return syst_type, direction


def select_variant(is_mc: bool, syst_type: SystType, direction: SystDirection) -> Variant:
    """Pick the jet/MET collection for a sample kind and variation selector.

    Only simulation carries JEC-shifted collections; every other systematic
    type leaves jets and MET at their nominal values.
    """
    if not is_mc or syst_type is not SystType.JEC:
        return Variant.NOMINAL
    if direction is SystDirection.UP:
        return Variant.JEC_UP
    return Variant.JEC_DOWN


def parse_syst_type(name: str) -> SystType:
    """Look up a ``SystType`` by enum name or value, case-insensitively."""
    key = name.strip()
    for member in SystType:
        if key.upper() == member.name or key.lower() == member.value:
            return member
    raise ValueError(
        f"Unknown systematic type '{name}'. Valid: {[m.name for m in SystType]}"
    )
