"""Immutable physics objects decoded from the ntuples.

Objects order by transverse momentum only, so ``sorted(jets, reverse=True)``
yields the leading jet first.  Equality still compares every field.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


class _OrderedByPt:
    """Mixin giving an ordering by ``pt``."""

    def __lt__(self, other):
        if not isinstance(other, _OrderedByPt):
            return NotImplemented
        return self.pt < other.pt

    def __le__(self, other):
        if not isinstance(other, _OrderedByPt):
            return NotImplemented
        return self.pt <= other.pt

    def __gt__(self, other):
        if not isinstance(other, _OrderedByPt):
            return NotImplemented
        return self.pt > other.pt

    def __ge__(self, other):
        if not isinstance(other, _OrderedByPt):
            return NotImplemented
        return self.pt >= other.pt


@dataclass(frozen=True)
class Lepton(_OrderedByPt):
    """Charged lepton; ``flavour`` is a signed PDG ID (e.g. 11, -13)."""

    flavour: int
    pt: float
    eta: float
    phi: float
    iso: float


@dataclass(frozen=True)
class Jet(_OrderedByPt):
    """Reconstructed jet with its b-tag discriminant and parton flavour."""

    pt: float
    eta: float
    phi: float
    btag: float
    flavour: int


@dataclass(frozen=True)
class MET:
    """Missing transverse energy."""

    pt: float = 0.0
    phi: float = 0.0

    @property
    def px(self) -> float:
        return self.pt * math.cos(self.phi)

    @property
    def py(self) -> float:
        return self.pt * math.sin(self.phi)
