"""Storage operations and the interface that every storage back end provides."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union


class StorageError(Exception):
    """Raised when a storage back end cannot read or write its state."""


@dataclass(frozen=True)
class AppendEntry:
    """Append one entry to the end of the log."""

    entry: Any


@dataclass(frozen=True)
class AppendEntries:
    """Append several entries to the end of the log."""

    entries: Sequence[Any]


@dataclass(frozen=True)
class AppendOnPrefix:
    """Replace everything from ``from_idx`` onwards with ``entries``."""

    from_idx: int
    entries: Sequence[Any]


@dataclass(frozen=True)
class SetPromise:
    """Store the last promised round."""

    ballot: Any


@dataclass(frozen=True)
class SetDecidedIndex:
    """Store the length of the decided log."""

    idx: int


@dataclass(frozen=True)
class SetAcceptedRound:
    """Store the last accepted round."""

    ballot: Any


@dataclass(frozen=True)
class SetCompactedIdx:
    """Store the compacted index."""

    idx: int


@dataclass(frozen=True)
class Trim:
    """Remove all log entries before ``idx``."""

    idx: int


@dataclass(frozen=True)
class SetStopsign:
    """Store (or clear, with ``None``) the stop sign."""

    stopsign: Optional[Any]


@dataclass(frozen=True)
class SetSnapshot:
    """Store (or clear, with ``None``) the snapshot."""

    snapshot: Optional[Any]


StorageOp = Union[
    AppendEntry,
    AppendEntries,
    AppendOnPrefix,
    SetPromise,
    SetDecidedIndex,
    SetAcceptedRound,
    SetCompactedIdx,
    Trim,
    SetStopsign,
    SetSnapshot,
]


class Storage(ABC):
    """Replica state and log of a consensus node."""

    def write_atomically(self, ops: Iterable[StorageOp]) -> None:
        """Apply ``ops`` in order."""
        for op in ops:
            self.apply(op)

    def apply(self, op: StorageOp) -> None:
        """Apply a single storage operation."""
        match op:
            case AppendEntry(entry):
                self.append_entry(entry)
            case AppendEntries(entries):
                self.append_entries(entries)
            case AppendOnPrefix(from_idx, entries):
                self.append_on_prefix(from_idx, entries)
            case SetPromise(ballot):
                self.set_promise(ballot)
            case SetDecidedIndex(idx):
                self.set_decided_idx(idx)
            case SetAcceptedRound(ballot):
                self.set_accepted_round(ballot)
            case SetCompactedIdx(idx):
                self.set_compacted_idx(idx)
            case Trim(idx):
                self.trim(idx)
            case SetStopsign(stopsign):
                self.set_stopsign(stopsign)
            case SetSnapshot(snapshot):
                self.set_snapshot(snapshot)
            case _:
                raise TypeError(f"unknown storage operation: {op!r}")

    @abstractmethod
    def append_entry(self, entry: Any) -> None: ...

    @abstractmethod
    def append_entries(self, entries: Iterable[Any]) -> None: ...

    @abstractmethod
    def append_on_prefix(self, from_idx: int, entries: Iterable[Any]) -> None: ...

    @abstractmethod
    def set_promise(self, n_prom: Any) -> None: ...

    @abstractmethod
    def get_promise(self) -> Optional[Any]: ...

    @abstractmethod
    def set_decided_idx(self, ld: int) -> None: ...

    @abstractmethod
    def get_decided_idx(self) -> int: ...

    @abstractmethod
    def set_accepted_round(self, na: Any) -> None: ...

    @abstractmethod
    def get_accepted_round(self) -> Optional[Any]: ...

    @abstractmethod
    def get_entries(self, from_idx: int, to_idx: int) -> list: ...

    @abstractmethod
    def get_log_len(self) -> int: ...

    @abstractmethod
    def get_suffix(self, from_idx: int) -> list: ...

    @abstractmethod
    def set_stopsign(self, s: Optional[Any]) -> None: ...

    @abstractmethod
    def get_stopsign(self) -> Optional[Any]: ...

    @abstractmethod
    def trim(self, trimmed_idx: int) -> None: ...

    @abstractmethod
    def set_compacted_idx(self, compact_idx: int) -> None: ...

    @abstractmethod
    def get_compacted_idx(self) -> int: ...

    @abstractmethod
    def set_snapshot(self, snapshot: Optional[Any]) -> None: ...

    @abstractmethod
    def get_snapshot(self) -> Optional[Any]: ...