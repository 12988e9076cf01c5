"""Event reader over one or more flat ntuple trees.

The reader walks a list of trees as one stream of events.  After each
successful ``read_next_event()`` it exposes

    - leptons and jets, sorted by decreasing pT,
    - the missing transverse energy,
    - the number of primary vertices,
    - the event weight, computed lazily and cached.

For simulation it also decodes JEC-shifted jets and MET; which collection the
accessors return depends on the variation chosen with ``set_systematics()``.
The cached weight is tied to both the current event and the current variation:
every advance and every ``set_systematics()`` call bumps a generation counter,
and the cache is only reused while its stamp matches.

Typical use::

    source = open_source("ttbar.root")
    reader = Reader(source, ["Vars"], is_mc=True, btag_reweighter=reweighter)
    reader.set_systematics(SystType.JEC, SystDirection.UP)
    while reader.read_next_event():
        leading_jet = reader.jets[0]
        w = reader.weight()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ntuplereader.errors import ConfigurationError, SourceInvalidError
from ntuplereader.partitions import PartitionSequencer
from ntuplereader.physics_objects import MET, Jet, Lepton
from ntuplereader.reader_config import (
    DEFAULT_CHUNK_SIZE,
    JET_BRANCHES,
    JET_JEC_DOWN_BRANCHES,
    JET_JEC_UP_BRANCHES,
    LEPTON_BRANCHES,
    MAX_OBJECTS,
    MET_BRANCHES,
    MET_JEC_DOWN_BRANCHES,
    MET_JEC_UP_BRANCHES,
    NUM_PV_BRANCH,
    RAW_WEIGHT_BRANCH,
)
from ntuplereader.source import ColumnarSourceBinding, source_is_usable
from ntuplereader.systematics import (
    SystDirection,
    SystType,
    Variant,
    normalize_selector,
    select_variant,
)

logger = logging.getLogger(__name__)

_JET_BLOCKS = {
    Variant.NOMINAL: JET_BRANCHES,
    Variant.JEC_UP: JET_JEC_UP_BRANCHES,
    Variant.JEC_DOWN: JET_JEC_DOWN_BRANCHES,
}

_MET_BLOCKS = {
    Variant.NOMINAL: MET_BRANCHES,
    Variant.JEC_UP: MET_JEC_UP_BRANCHES,
    Variant.JEC_DOWN: MET_JEC_DOWN_BRANCHES,
}


@dataclass
class DecodedEvent:
    """Objects of the current event.  Decoded events carry variants only for MC."""
    leptons: tuple[Lepton, ...] = ()
    jets: dict[Variant, tuple[Jet, ...]] = field(default_factory=lambda: {v: () for v in Variant})
    met: dict[Variant, MET] = field(default_factory=lambda: {v: MET() for v in Variant})
    raw_weight: float = 1.0
    num_pv: int = 0


@dataclass
class _WeightCache:
    value: float = 1.0
    generation: int = -1


class Reader:
    """Sequential reader of leptons, jets and MET from flat ntuples.

    Parameters
    - `source`: storage handle, e.g. ``uproot.open(path)``.  Referenced, not
      owned; it must stay open while the reader is used.
    - `partition_names`: tree name or ordered list of tree names to read.
    - `is_mc`: simulation (True) or collision data (False).
    - `btag_reweighter`: optional model giving per-jet b-tag weight factors.
      Reweighting is enabled by default when one is supplied.
    - `capacity`, `chunk_size`: passed to ``ColumnarSourceBinding``.

    The first tree is bound immediately, so a missing tree raises
    ``MissingPartitionError`` before any event is read.
    """

    def __init__(self, source, partition_names, is_mc=True, *, btag_reweighter=None,
                 capacity=MAX_OBJECTS, chunk_size=DEFAULT_CHUNK_SIZE):
        if not source_is_usable(source):
            raise SourceInvalidError("The source file does not exist or is corrupted.")

        if isinstance(partition_names, str):
            partition_names = [partition_names]

        self._source = source
        self._is_mc = bool(is_mc)
        self._partitions = PartitionSequencer(partition_names)
        self._binding = ColumnarSourceBinding(
            source, self._is_mc, capacity=capacity, chunk_size=chunk_size,
        )

        self._btag_reweighter = btag_reweighter
        self._apply_btag_reweighting = btag_reweighter is not None

        self._syst_type = SystType.NOMINAL
        self._syst_direction = SystDirection.UP

        self._event = DecodedEvent()
        self._entry = -1
        self._generation = 0
        self._weight_cache = _WeightCache()
        self._bind_failed = False

        self._bind_current()

    # -- iteration -----------------------------------------------------------

    def _bind_current(self) -> None:
        self._bind_failed = True
        self._binding.bind(self._partitions.current())
        self._bind_failed = False

    def read_next_event(self) -> bool:
        """Decode the next event.  Returns False once every tree is exhausted.

        If binding a tree failed, later calls retry that same tree instead of
        moving past it, so they keep raising until ``rewind()`` succeeds.
        """
        if self._bind_failed:
            self._bind_current()

        while self._binding.exhausted:
            if not self._partitions.advance():
                return False
            logger.debug("Switching to tree '%s'", self._partitions.current())
            self._bind_current()

        self._entry = self._binding.next_entry()
        self._event = self._decode()
        self._invalidate_weight()
        return True

    def events(self):
        """Yield the reader itself once per remaining event."""
        while self.read_next_event():
            yield self

    def rewind(self) -> None:
        """Restart from the first event of the first tree."""
        self._partitions.reset()
        # Tear down before rebinding: the first tree may be the one bound now.
        self._binding.release()
        self._bind_current()
        self._entry = -1
        self._invalidate_weight()

    def _decode(self) -> DecodedEvent:
        binding = self._binding
        variants = list(_JET_BLOCKS) if self._is_mc else [Variant.NOMINAL]

        leptons = self._decode_leptons()
        jets = {v: self._decode_jets(_JET_BLOCKS[v]) for v in variants}
        met = {
            v: MET(binding.scalar(_MET_BLOCKS[v]["pt"]), binding.scalar(_MET_BLOCKS[v]["phi"]))
            for v in variants
        }
        raw_weight = binding.scalar(RAW_WEIGHT_BRANCH) if self._is_mc else 1.0

        return DecodedEvent(
            leptons=tuple(sorted(leptons, reverse=True)),
            jets={v: tuple(sorted(js, reverse=True)) for v, js in jets.items()},
            met=met,
            raw_weight=raw_weight,
            num_pv=int(binding.scalar(NUM_PV_BRANCH)),
        )

    def _decode_leptons(self) -> list[Lepton]:
        b = LEPTON_BRANCHES
        n = self._binding.scalar(b["size"])
        flavour = self._binding.values(b["flavour"], n)
        pt = self._binding.values(b["pt"], n)
        eta = self._binding.values(b["eta"], n)
        phi = self._binding.values(b["phi"], n)
        iso = self._binding.values(b["iso"], n)
        return [
            Lepton(int(flavour[i]), float(pt[i]), float(eta[i]), float(phi[i]), float(iso[i]))
            for i in range(n)
        ]

    def _decode_jets(self, b) -> list[Jet]:
        n = self._binding.scalar(b["size"])
        pt = self._binding.values(b["pt"], n)
        eta = self._binding.values(b["eta"], n)
        phi = self._binding.values(b["phi"], n)
        btag = self._binding.values(b["btag"], n)
        flavour = self._binding.values(b["flavour"], n)
        return [
            Jet(float(pt[i]), float(eta[i]), float(phi[i]), float(btag[i]), int(flavour[i]))
            for i in range(n)
        ]

    # -- variations ----------------------------------------------------------

    @property
    def is_mc(self) -> bool:
        return self._is_mc

    @property
    def syst_type(self) -> SystType:
        return self._syst_type

    @property
    def syst_direction(self) -> SystDirection:
        return self._syst_direction

    def set_systematics(self, syst_type: SystType, syst_direction: SystDirection = SystDirection.UP) -> None:
        """Choose the systematic variation.  Persists across events."""
        self._syst_type, self._syst_direction = normalize_selector(syst_type, syst_direction)
        self._invalidate_weight()

    def _variant(self) -> Variant:
        return select_variant(self._is_mc, self._syst_type, self._syst_direction)

    # -- accessors -----------------------------------------------------------

    @property
    def leptons(self) -> tuple[Lepton, ...]:
        return self._event.leptons

    @property
    def jets(self) -> tuple[Jet, ...]:
        return self._event.jets[self._variant()]

    @property
    def met(self) -> MET:
        return self._event.met[self._variant()]

    @property
    def num_pv(self) -> int:
        return self._event.num_pv

    @property
    def partition(self) -> str:
        """Name of the tree currently bound."""
        return self._partitions.current()

    @property
    def entry(self) -> int:
        """Index of the current event within its tree, -1 before the first read."""
        return self._entry

    # -- weight --------------------------------------------------------------

    def switch_btag_reweighting(self, enabled: bool = True) -> None:
        """Turn the per-jet b-tag factors on or off.

        Does not invalidate a weight that is already cached for this event.
        """
        if enabled and self._btag_reweighter is None:
            raise ConfigurationError("Cannot enable b-tag reweighting without a reweighting model.")
        self._apply_btag_reweighting = enabled

    def _invalidate_weight(self) -> None:
        self._generation += 1

    def weight(self) -> float:
        """Event weight for the current event and variation; always 1 for data."""
        if not self._is_mc:
            return 1.0

        if self._weight_cache.generation == self._generation:
            return self._weight_cache.value

        # Raw weights already include pileup, lepton scale factors and the
        # cross-section/luminosity normalisation.
        weight = self._event.raw_weight

        if self._apply_btag_reweighting:
            for jet in self._event.jets[Variant.NOMINAL]:
                factor = self._btag_reweighter.calculate_jet_weight(
                    jet, self._syst_type, self._syst_direction,
                )
                # A zero factor marks a jet without a valid SF; leave the weight alone.
                if factor != 0.0:
                    weight *= factor

        self._weight_cache = _WeightCache(value=weight, generation=self._generation)
        return weight
