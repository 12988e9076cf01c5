"""Bookkeeping of which tree of a multi-tree sample is being read."""

from __future__ import annotations

from ntuplereader.errors import ConfigurationError


class PartitionSequencer:
    """Cursor over an ordered list of tree names.

    The sequencer does no I/O; the reader binds whichever name is current.
    """

    def __init__(self, names):
        self._names = tuple(names)
        self._index = 0
        self._exhausted = False

    def __len__(self):
        return len(self._names)

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> str:
        if not self._names:
            raise ConfigurationError("The list of tree names is empty.")
        return self._names[self._index]

    def advance(self) -> bool:
        """Move to the next name.  Returns False once the list is used up."""
        if self._exhausted:
            return False
        if self._index + 1 < len(self._names):
            self._index += 1
            return True
        self._exhausted = True
        return False

    def reset(self) -> None:
        self._index = 0
        self._exhausted = False
