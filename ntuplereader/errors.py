"""Exceptions raised by the ntuple reader."""

from __future__ import annotations


class ReaderError(RuntimeError):
    """Base class for all reader failures."""


class SourceInvalidError(ReaderError):
    """The storage handle is missing, closed or unreadable."""


class ConfigurationError(ReaderError, ValueError):
    """The reader was set up with inconsistent arguments."""


class MissingPartitionError(ReaderError):
    """A tree named in the partition list is not in the source file."""

    def __init__(self, partition: str, source: str):
        self.partition = partition
        self.source = source
        super().__init__(f'Cannot find tree "{partition}" in file "{source}".')


class MissingColumnError(ReaderError):
    """A tree lacks branches the reader needs."""

    def __init__(self, partition: str, columns: list[str]):
        self.partition = partition
        self.columns = list(columns)
        super().__init__(
            f"Tree '{partition}' is missing required branches: {', '.join(self.columns)}"
        )


class CapacityExceededError(ReaderError):
    """An entry holds more objects than the decode buffers can take."""
