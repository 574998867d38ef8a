"""Dashboard state for a single consensus node."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

UI_TITLE = "OmniPaxos"
UI_THROUGHPUT_TITLE = "Throughput"
UI_TABLE_TITLE = "Peers"
UI_NODE_INFO_TITLE = "Current node information"
UI_CLUSTER_INFO_TITLE = "Cluster information"
UI_LOGGING_TITLE = "System log"
THROUGHPUT_DATA_SIZE = 200
UI_BARCHART_WIDTH = 3
UI_BARCHART_GAP = 1
UI_TABLE_CONTENT_HEIGHT = 1
UI_TABLE_ROW_MARGIN = 1

DEFAULT_COLOR = "default"
ORANGE = "color(208)"
PINK = "color(211)"

COLORS: Tuple[str, ...] = (
    "green",
    "blue",
    "red",
    ORANGE,
    "cyan",
    "magenta",
    "yellow",
    PINK,
)


@dataclass(eq=False)
class Node:
    """Basic information about one node of the cluster."""

    pid: int = 0
    ballot_number: int = 0
    leader: int = 0
    color: str = DEFAULT_COLOR
    connected: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.pid == other.pid and self.ballot_number == other.ballot_number

    def __hash__(self) -> int:
        return hash((self.pid, self.ballot_number))

    @classmethod
    def from_ballot(cls, ballot: Any) -> "Node":
        """Build a node from a ballot carrying ``pid`` and ``n``."""
        return cls(pid=ballot.pid, ballot_number=ballot.n)


class Role(Enum):
    """Role of the node shown on the dashboard."""

    FOLLOWER = "Follower"
    LEADER = "Leader"

    def __str__(self) -> str:
        return self.value


@dataclass
class UIAppConfig:
    """Identity of this node and of its peers."""

    pid: int
    peers: List[int] = field(default_factory=list)

    @classmethod
    def from_cluster(cls, pid: int, nodes: Iterable[int]) -> "UIAppConfig":
        """Build a configuration from a cluster's node list, excluding ``pid``."""
        return cls(pid=pid, peers=[node for node in nodes if node != pid])


class App:
    """The states the dashboard displays."""

    def __init__(
        self,
        config: UIAppConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not config.peers:
            raise ValueError("the configuration must name at least one peer")
        self._clock = clock
        max_pid = max(max(config.peers), config.pid)

        self.current_node = Node(pid=config.pid)
        pids = sorted([*config.peers, config.pid])
        self.nodes: List[Node] = [
            Node(pid=pid, color=COLORS[idx % len(COLORS)])
            for idx, pid in enumerate(pids)
        ]
        for node in self.nodes:
            if node.pid == config.pid:
                self.current_node.color = node.color
        self.active_peers: List[Node] = [
            Node(pid=n.pid, color=n.color) for n in self.nodes if n.pid != config.pid
        ]

        self.current_leader: Optional[int] = None
        self.leader_color: str = DEFAULT_COLOR
        self.current_role = Role.FOLLOWER
        self.decided_idx = 0
        self._last_update_time = clock()
        self.throughput_data: List[Tuple[str, int]] = []
        self.dps = 0.0
        self.followers_progress: List[float] = [0.0] * (max_pid + 1)
        self.followers_accepted_idx: List[int] = [0] * (max_pid + 1)

    def set_decided_idx(self, decided_idx: int) -> None:
        """Record a new decided index and update the throughput figures."""
        throughput = decided_idx - self.decided_idx
        if throughput < 0:
            raise ValueError(
                f"decided index {decided_idx} is below the current {self.decided_idx}"
            )
        now = self._clock()
        period = now - self._last_update_time
        self.throughput_data.insert(0, (str(throughput), throughput))
        if period > 0:
            self.dps = throughput / period
        else:
            self.dps = float("inf") if throughput else 0.0
        self._last_update_time = now
        self.decided_idx = decided_idx