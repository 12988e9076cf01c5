"""Binding of fixed-capacity decode buffers to the branches of one tree.

The binding owns an arena of pre-sized numpy arrays, one per recognized
branch.  ``load_entry(i)`` copies entry ``i`` of the bound tree into the
arena; the reader then turns the buffers into physics objects.  Entries are
fetched from uproot in chunks so that walking a tree entry by entry does not
issue one read request per entry.
"""

from __future__ import annotations

import logging

import numpy as np
import uproot

from ntuplereader.errors import (
    CapacityExceededError,
    MissingColumnError,
    MissingPartitionError,
    ReaderError,
    SourceInvalidError,
)
from ntuplereader.reader_config import (
    DEFAULT_CHUNK_SIZE,
    INTEGER_FIELDS,
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

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Storage handle helpers
# ---------------------------------------------------------------------------

def open_source(path, **options):
    """Open a ROOT file with uproot, raising ``SourceInvalidError`` on failure."""
    try:
        return uproot.open(path, **options)
    except (OSError, ValueError) as exc:
        raise SourceInvalidError(f"Cannot open source file '{path}': {exc}") from exc


def source_is_usable(source) -> bool:
    """False for a missing handle or one whose underlying file is closed."""
    if source is None:
        return False
    file = getattr(source, "file", None)
    return not getattr(file, "closed", False)


def source_label(source) -> str:
    """Human-readable identifier of a storage handle for error messages."""
    return getattr(source, "file_path", None) or repr(source)


# ---------------------------------------------------------------------------
# Column sets
# ---------------------------------------------------------------------------

def object_blocks(is_mc: bool) -> list[dict[str, str]]:
    """Branch maps of the per-object blocks read for a sample kind."""
    blocks = [LEPTON_BRANCHES, JET_BRANCHES]
    if is_mc:
        blocks += [JET_JEC_UP_BRANCHES, JET_JEC_DOWN_BRANCHES]
    return blocks


def scalar_columns(is_mc: bool) -> list[str]:
    """Per-event scalar branches read for a sample kind (counters excluded)."""
    columns = [MET_BRANCHES["pt"], MET_BRANCHES["phi"], NUM_PV_BRANCH]
    if is_mc:
        columns += [
            MET_JEC_UP_BRANCHES["pt"], MET_JEC_UP_BRANCHES["phi"],
            MET_JEC_DOWN_BRANCHES["pt"], MET_JEC_DOWN_BRANCHES["phi"],
            RAW_WEIGHT_BRANCH,
        ]
    return columns


def recognized_columns(is_mc: bool) -> list[str]:
    """Every branch the reader binds for a sample kind."""
    columns = []
    for block in object_blocks(is_mc):
        columns.extend(block.values())
    columns.extend(scalar_columns(is_mc))
    return columns


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------

class ColumnarSourceBinding:
    """Decode buffers bound to one tree of a storage handle at a time.

    Parameters
    - `source`: object supporting ``name in source`` and ``source[name]``,
      e.g. the directory returned by ``uproot.open``.
    - `is_mc`: whether simulation-only branches are bound.
    - `capacity`: maximum objects per block in one entry.
    - `chunk_size`: number of entries read from the tree per request.
    """

    def __init__(self, source, is_mc, capacity=MAX_OBJECTS, chunk_size=DEFAULT_CHUNK_SIZE):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._source = source
        self._is_mc = is_mc
        self._capacity = capacity
        self._chunk_size = chunk_size

        self._blocks = object_blocks(is_mc)
        self._scalars = scalar_columns(is_mc)
        self._columns = recognized_columns(is_mc)

        self._name = None
        self._tree = None
        self._buffers: dict[str, np.ndarray] = {}
        self._entry_count = 0
        self._cursor = 0
        self._chunk = None
        self._chunk_start = 0
        self._chunk_stop = 0

    # -- lifecycle -----------------------------------------------------------

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def is_bound(self) -> bool:
        return self._tree is not None

    def bind(self, name: str) -> None:
        """Bind the buffers to tree *name*, resetting the entry cursor."""
        self.release()

        if name not in self._source:
            raise MissingPartitionError(name, source_label(self._source))
        tree = self._source[name]
        if not hasattr(tree, "num_entries"):
            raise MissingPartitionError(name, source_label(self._source))

        available = set(tree.keys())
        missing = [c for c in self._columns if c not in available]
        if missing:
            raise MissingColumnError(name, missing)

        self._tree = tree
        self._name = name
        self._entry_count = int(tree.num_entries)
        self._cursor = 0
        self._buffers = self._allocate_buffers()
        logger.info("Bound tree '%s' with %d entries", name, self._entry_count)

    def release(self) -> None:
        """Drop the bound tree, its buffers and any read-ahead chunk."""
        if self._tree is not None:
            logger.debug("Releasing tree '%s'", self._name)
        self._tree = None
        self._name = None
        self._buffers = {}
        self._entry_count = 0
        self._cursor = 0
        self._chunk = None
        self._chunk_start = 0
        self._chunk_stop = 0

    def _allocate_buffers(self):
        buffers = {}
        for block in self._blocks:
            for field, column in block.items():
                dtype = np.int64 if field in INTEGER_FIELDS else np.float64
                size = 1 if field == "size" else self._capacity
                buffers[column] = np.zeros(size, dtype=dtype)
        for column in self._scalars:
            dtype = np.int64 if column == NUM_PV_BRANCH else np.float64
            buffers[column] = np.zeros(1, dtype=dtype)
        return buffers

    # -- entries -------------------------------------------------------------

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def exhausted(self) -> bool:
        return self._cursor >= self._entry_count

    def next_entry(self) -> int:
        """Load the entry at the cursor and advance the cursor.  Returns its index."""
        index = self._cursor
        self.load_entry(index)
        self._cursor += 1
        return index

    def load_entry(self, index: int) -> None:
        """Copy entry *index* of the bound tree into the buffers."""
        if self._tree is None:
            raise ReaderError("No tree is bound.")
        if not 0 <= index < self._entry_count:
            raise IndexError(
                f"Entry {index} out of range for tree '{self._name}' "
                f"with {self._entry_count} entries"
            )

        if self._chunk is None or not self._chunk_start <= index < self._chunk_stop:
            self._fetch_chunk(index)
        row = index - self._chunk_start

        for column in self._scalars:
            self._buffers[column][0] = self._chunk[column][row]

        for block in self._blocks:
            size_column = block["size"]
            n = int(self._chunk[size_column][row])
            if n > self._capacity:
                raise CapacityExceededError(
                    f"Entry {index} of tree '{self._name}' has {n} objects in "
                    f"'{size_column}', buffers hold at most {self._capacity}"
                )
            self._buffers[size_column][0] = n
            for field, column in block.items():
                if field == "size":
                    continue
                values = np.asarray(self._chunk[column][row])
                if len(values) < n:
                    raise ReaderError(
                        f"Branch '{column}' has {len(values)} values in entry {index} "
                        f"of tree '{self._name}', counter '{size_column}' says {n}"
                    )
                self._buffers[column][:n] = values[:n]

    def _fetch_chunk(self, index):
        start = index
        stop = min(index + self._chunk_size, self._entry_count)
        logger.debug("Reading entries [%d, %d) of tree '%s'", start, stop, self._name)
        self._chunk = self._tree.arrays(
            self._columns, entry_start=start, entry_stop=stop, library="np",
        )
        self._chunk_start = start
        self._chunk_stop = stop

    # -- buffer access -------------------------------------------------------

    def scalar(self, column: str):
        """Value of a scalar (or counter) buffer as a Python number."""
        return self._buffers[column][0].item()

    def values(self, column: str, n: int) -> np.ndarray:
        """First *n* values of a per-object buffer."""
        return self._buffers[column][:n]
