"""Per-jet b-tag shape reweighting.

The reader multiplies the raw event weight by one factor per jet, obtained
from any object implementing ``BTagReweighter``.  ``CorrectionlibBTagReweighter``
evaluates the shape-calibration scale factors published as correctionlib
payloads.  Payloads are cached per process to avoid re-reading JSON.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ntuplereader.physics_objects import Jet
from ntuplereader.reader_config import (
    BTAG_CORRECTION_NAME,
    BTAG_ETA_MAX,
    BTAG_PT_RANGE,
    BTAG_SYST_NAMES,
)
from ntuplereader.systematics import SystDirection, SystType

logger = logging.getLogger(__name__)

# Cache correctionlib payloads per process (keyed by JSON path).
_CORRECTIONSET_CACHE = {}

# Warn-once cache to avoid log spam.
_WARN_ONCE: set[str] = set()

# Variations that apply to charm jets only; all others apply to b and light jets.
_CHARM_ONLY = {SystType.BTAG_CERR1, SystType.BTAG_CERR2}


class BTagReweighter(Protocol):
    def calculate_jet_weight(self, jet: Jet, syst_type: SystType,
                             syst_direction: SystDirection) -> float:
        ...


def _get_btag_ceval(json_path):
    """Load (and cache) a correctionlib CorrectionSet for the b-tag SF file."""
    import correctionlib

    ceval = _CORRECTIONSET_CACHE.get(json_path)
    if ceval is None:
        ceval = correctionlib.CorrectionSet.from_file(json_path)
        _CORRECTIONSET_CACHE[json_path] = ceval
    return ceval


def hadron_flavour(jet: Jet) -> int:
    """Collapse the jet flavour to 5 (b), 4 (c) or 0 (light)."""
    flavour = abs(int(jet.flavour))
    return flavour if flavour in (4, 5) else 0


def systematic_name(flavour: int, syst_type: SystType, syst_direction: SystDirection) -> str:
    """Systematic string understood by the shape correction for one jet.

    Variations that do not apply to the jet's flavour fall back to "central".
    """
    suffix = BTAG_SYST_NAMES.get(syst_type.name)
    if suffix is None:
        return "central"
    if (flavour == 4) != (syst_type in _CHARM_ONLY):
        return "central"
    return f"{syst_direction.value}_{suffix}"


class CorrectionlibBTagReweighter:
    """Shape scale factors from a correctionlib JSON payload.

    Jets outside the calibrated pT/eta range get a factor of 0, which the
    reader skips when building the event weight.
    """

    def __init__(self, json_path, correction_name=BTAG_CORRECTION_NAME,
                 pt_range=BTAG_PT_RANGE, eta_max=BTAG_ETA_MAX):
        self.json_path = str(json_path)
        self.correction_name = correction_name
        self.pt_range = pt_range
        self.eta_max = eta_max
        self._correction = None

    @property
    def correction(self):
        if self._correction is None:
            self._correction = _get_btag_ceval(self.json_path)[self.correction_name]
        return self._correction

    def in_acceptance(self, jet: Jet) -> bool:
        return self.pt_range[0] <= jet.pt < self.pt_range[1] and abs(jet.eta) < self.eta_max

    def calculate_jet_weight(self, jet, syst_type, syst_direction):
        if not self.in_acceptance(jet):
            return 0.0

        flavour = hadron_flavour(jet)
        systematic = systematic_name(flavour, syst_type, syst_direction)
        if syst_type is not SystType.NOMINAL and systematic == "central":
            key = f"central_fallback::{syst_type.name}::{flavour}"
            if key not in _WARN_ONCE:
                _WARN_ONCE.add(key)
                logger.debug(
                    "Variation %s does not apply to flavour %d jets; using central SF.",
                    syst_type.name, flavour,
                )

        # Discriminant can drift slightly outside [0, 1] after rounding.
        discriminant = min(max(float(jet.btag), 0.0), 1.0)
        return float(
            self.correction.evaluate(
                systematic, flavour, abs(float(jet.eta)), float(jet.pt), discriminant,
            )
        )
