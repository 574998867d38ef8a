"""In-memory storage with fast reads and writes."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .ops import Storage


class MemoryStorage(Storage):
    """Keeps the log and replica state in memory."""

    def __init__(self) -> None:
        self._log: list = []
        self._n_prom: Optional[Any] = None
        self._acc_round: Optional[Any] = None
        self._ld = 0
        self._trimmed_idx = 0
        self._compacted_idx = 0
        self._snapshot: Optional[Any] = None
        self._stopsign: Optional[Any] = None

    def _local(self, idx: int) -> int:
        if idx < self._trimmed_idx:
            raise ValueError(
                f"index {idx} lies before the trimmed index {self._trimmed_idx}"
            )
        return idx - self._trimmed_idx

    def write_atomically(self, ops: Iterable[Any]) -> None:
        """Apply the operations one after another, in order."""
        for op in ops:
            self.apply(op)

    def append_entry(self, entry: Any) -> None:
        self._log.append(entry)

    def append_entries(self, entries: Iterable[Any]) -> None:
        self._log.extend(entries)

    def append_on_prefix(self, from_idx: int, entries: Iterable[Any]) -> None:
        del self._log[self._local(from_idx):]
        self.append_entries(entries)

    def set_promise(self, n_prom: Any) -> None:
        self._n_prom = n_prom

    def get_promise(self) -> Optional[Any]:
        return self._n_prom

    def set_decided_idx(self, ld: int) -> None:
        self._ld = ld

    def get_decided_idx(self) -> int:
        return self._ld

    def set_accepted_round(self, na: Any) -> None:
        self._acc_round = na

    def get_accepted_round(self) -> Optional[Any]:
        return self._acc_round

    def get_entries(self, from_idx: int, to_idx: int) -> list:
        start = self._local(from_idx)
        end = self._local(to_idx)
        if start > end or end > len(self._log):
            return []
        return self._log[start:end]

    def get_log_len(self) -> int:
        return len(self._log)

    def get_suffix(self, from_idx: int) -> list:
        start = self._local(from_idx)
        if start > len(self._log):
            return []
        return self._log[start:]

    def set_stopsign(self, s: Optional[Any]) -> None:
        self._stopsign = s

    def get_stopsign(self) -> Optional[Any]:
        return self._stopsign

    def trim(self, trimmed_idx: int) -> None:
        to_trim = min(self._local(trimmed_idx), len(self._log))
        del self._log[:to_trim]
        self._trimmed_idx = trimmed_idx

    def set_compacted_idx(self, compact_idx: int) -> None:
        self._compacted_idx = compact_idx

    def get_compacted_idx(self) -> int:
        return self._compacted_idx

    def set_snapshot(self, snapshot: Optional[Any]) -> None:
        self._snapshot = snapshot

    def get_snapshot(self) -> Optional[Any]:
        return self._snapshot