# paxstore

Storage backends and a terminal dashboard for replicas of a Paxos-style
replicated log.

A replica keeps a log of entries together with a small amount of protocol
state: the promised ballot, the accepted round, the decided index, the
compacted index, an optional snapshot and an optional stop-sign. `paxstore`
gives you two interchangeable stores for that state and a live terminal view
of a running node.

## Storage

Both stores implement the abstract `Storage` class from `paxstore.ops`:
`append_entry`, `append_entries`, `append_on_prefix`, `get_entries`,
`get_suffix`, `get_log_len`, `trim`, and a getter and setter each for the
promise, the accepted round, the decided index, the compacted index, the
stop-sign and the snapshot.

- `paxstore.memory_storage.MemoryStorage` keeps everything in memory.
- `paxstore.persistent_storage.PersistentStorage` keeps the log and the
  replica state in an SQLite database inside a directory, and recovers the
  position of the next log entry when it is opened again.

### In memory

```python
from paxstore.memory_storage import MemoryStorage

store = MemoryStorage()
store.append_entries(["a", "b", "c"])
store.set_decided_idx(2)

store.get_entries(0, 2)    # ["a", "b"]
store.get_suffix(1)        # ["b", "c"]
store.get_decided_idx()    # 2
```

Log positions in `MemoryStorage` are absolute: after `trim(idx)` the entries
before `idx` are gone, later entries keep their indexes, and `get_log_len()`
counts only the entries still held. Asking for an index before the trimmed
point raises `ValueError`. `get_entries` returns an empty list when the range
runs past the end of the log.

### Batches of operations

Changes can be expressed as operation objects from `paxstore.ops` and handed
to `write_atomically`, which applies them in order:

```python
from paxstore.ops import AppendEntries, SetCompactedIdx, SetDecidedIndex, Trim

store.write_atomically([
    AppendEntries(["d", "e"]),
    SetDecidedIndex(4),
])

store.write_atomically([
    SetCompactedIdx(2),
    Trim(2),
])
store.get_log_len()        # 3
```

The operations are `AppendEntry`, `AppendEntries`, `AppendOnPrefix`,
`SetPromise`, `SetDecidedIndex`, `SetAcceptedRound`, `SetCompactedIdx`,
`Trim`, `SetStopsign` and `SetSnapshot`. `Storage.apply(op)` applies a single
one; anything else raises `TypeError`.

`PersistentStorage.write_atomically` runs the whole batch in one database
transaction: if an operation fails, the transaction is rolled back and none
of the batch takes effect. `MemoryStorage.write_atomically` has no rollback;
operations applied before a failure stay applied.

### On disk

```python
from paxstore.persistent_storage import PersistentStorage, PersistentStorageConfig

config = PersistentStorageConfig.with_path("replica-1")
with PersistentStorage.open(config) as store:
    store.append_entry("a")
    store.set_decided_idx(1)

with PersistentStorage.open(config) as store:
    store.get_suffix(0)        # ["a"]
    store.get_decided_idx()    # 1
```

- `PersistentStorageConfig` has a `path` (a directory) and
  `create_if_missing` (default `True`). With `create_if_missing=False`,
  opening a directory that does not exist raises `StorageError`.
- `PersistentStorage.open(config)` opens the store in the directory, creating
  it if allowed. `PersistentStorage.new(config)` raises `FileExistsError` if
  anything already exists at the path.
- The store is a context manager; `close()` releases it explicitly.
- Entries, ballots, stop-signs and snapshots are stored with `pickle`, so
  they must be picklable. Failures to serialize, deserialize or reach the
  database raise `paxstore.ops.StorageError`.
- `get_log_len()` is the next log position minus the compacted index, so
  keep `set_compacted_idx` in step with `trim`.

## Dashboard

`paxstore.dashboard.PaxosDashboard` draws a full-screen terminal view of one
node: its ballot, role and decided index, a throughput chart, the peers and
whether they are connected, a log pane and, while the node leads, how far
each follower has accepted.

```python
from paxstore.app import UIAppConfig
from paxstore.dashboard import PaxosDashboard

dashboard = PaxosDashboard(UIAppConfig.from_cluster(1, [1, 2, 3]))
log = PaxosDashboard.logger()

dashboard.start()
while dashboard.is_started():
    dashboard.tick(states)   # the node's current state, see below
    ...
dashboard.stop()
```

- `UIAppConfig.from_cluster(pid, nodes)` takes this node's id and the ids of
  all nodes in the cluster. At least one peer is required; `App` raises
  `ValueError` otherwise.
- `start()` takes over the terminal and `stop()` gives it back; both do
  nothing if already in that state. Pressing `q` or `Esc` stops the
  dashboard; keys are checked whenever it redraws, i.e. on `start()` and on
  every `tick()`.
- `tick(states)` does nothing unless the dashboard is started. `states` is
  any object with `current_ballot.n`, `decided_idx`, `current_leader` (a node
  id or `None`), and `cluster_state.accepted_indexes` (a list indexed by
  node id) and `cluster_state.heartbeats` (items with `ballot.pid`,
  `ballot.n` and `leader.pid`). The decided index must not go down; a lower
  value raises `ValueError`.
- `PaxosDashboard.logger()` returns a standard `logging.Logger` whose
  records are shown in the log pane.

The views themselves are built by `paxstore.render`: `render(app, width,
log_lines)` returns a `rich` `Layout` for the node's role (`render_follower`
and `render_leader` build each one), and `chart_data`, `connected_symbol`,
`ballot_and_leader_strings` and `gauge_color` give the chart bars, table
cells and gauge colours. `paxstore.app` holds the displayed state (`App`,
`Node`, `Role`, `UIAppConfig`).

## What this package does not do

`paxstore` does not run the consensus protocol: there is no leader election,
no message handling and no networking. The stores only keep what a replica
tells them, and the dashboard only shows the state objects it is handed.
There is no command-line program.

## Tests

The test suite uses pytest; install the `test` extra to get it.