import pytest

from paxstore.memory_storage import MemoryStorage
from paxstore.ops import SetSnapshot, SetStopsign


def test_defaults():
    storage = MemoryStorage()
    assert storage.get_promise() is None
    assert storage.get_accepted_round() is None
    assert storage.get_decided_idx() == 0
    assert storage.get_compacted_idx() == 0
    assert storage.get_log_len() == 0
    assert storage.get_stopsign() is None
    assert storage.get_snapshot() is None


def test_append_and_read_range():
    storage = MemoryStorage()
    entries = [1, 3, 2, 7, 5, 10]
    storage.append_entries(entries[:-1])
    storage.append_entry(entries[-1])
    assert storage.get_log_len() == len(entries)
    assert storage.get_entries(1, 4) == entries[1:4]
    assert storage.get_suffix(2) == entries[2:]


def test_out_of_range_reads_are_empty():
    storage = MemoryStorage()
    storage.append_entries(["a", "b"])
    assert storage.get_entries(0, 5) == []
    assert storage.get_entries(2, 1) == []
    assert storage.get_suffix(3) == []


def test_append_on_prefix_truncates():
    storage = MemoryStorage()
    storage.append_entries(["a", "b", "c", "d"])
    storage.append_on_prefix(2, ["x", "y", "z"])
    assert storage.get_suffix(0) == ["a", "b", "x", "y", "z"]


def test_trim_keeps_absolute_indexing():
    storage = MemoryStorage()
    entries = ["a", "b", "c", "d", "e"]
    storage.append_entries(entries)
    storage.trim(2)
    assert storage.get_log_len() == len(entries) - 2
    assert storage.get_entries(2, 5) == entries[2:5]
    assert storage.get_suffix(3) == entries[3:]
    storage.append_on_prefix(3, ["x"])
    assert storage.get_suffix(2) == ["c", "x"]


def test_trim_beyond_log_end():
    storage = MemoryStorage()
    storage.append_entries(["a", "b", "c"])
    storage.trim(10)
    assert storage.get_log_len() == 0
    storage.append_entry("x")
    assert storage.get_entries(10, 11) == ["x"]


def test_reads_before_trimmed_index_are_rejected():
    storage = MemoryStorage()
    storage.append_entries(["a", "b", "c"])
    storage.trim(2)
    with pytest.raises(ValueError):
        storage.get_entries(0, 3)
    with pytest.raises(ValueError):
        storage.trim(1)


def test_compacted_index_is_independent_of_trim():
    storage = MemoryStorage()
    storage.append_entries(["a", "b", "c"])
    storage.set_compacted_idx(2)
    assert storage.get_compacted_idx() == 2
    assert storage.get_log_len() == 3


def test_rounds_round_trip():
    storage = MemoryStorage()
    storage.set_promise((4, 2, 1))
    storage.set_accepted_round((3, 1, 1))
    assert storage.get_promise() == (4, 2, 1)
    assert storage.get_accepted_round() == (3, 1, 1)


def test_stopsign_and_snapshot_can_be_cleared():
    storage = MemoryStorage()
    storage.write_atomically([SetStopsign("stop"), SetSnapshot({"k": 1})])
    assert storage.get_stopsign() == "stop"
    assert storage.get_snapshot() == {"k": 1}
    storage.write_atomically([SetStopsign(None), SetSnapshot(None)])
    assert storage.get_stopsign() is None
    assert storage.get_snapshot() is None