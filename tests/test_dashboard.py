import io
from types import SimpleNamespace

import pytest
from rich.console import Console

from paxstore.app import DEFAULT_COLOR, Role, UIAppConfig
from paxstore.dashboard import PaxosDashboard


class FakeScreen:
    def __init__(self, keys=()):
        self.width = 120
        self.keys = list(keys)
        self.entered = 0
        self.left = 0
        self.draws = []

    def enter(self):
        self.entered += 1

    def leave(self):
        self.left += 1

    def read_key(self):
        return self.keys.pop(0) if self.keys else None

    def draw(self, renderable):
        self.draws.append(renderable)


def _clock():
    ticks = iter(range(1000))
    return lambda: float(next(ticks))


def _ballot(pid, n):
    return SimpleNamespace(pid=pid, n=n)


def _states(decided_idx=0, leader=None, ballot_n=1, accepted=(0, 0, 0, 0), heartbeats=()):
    return SimpleNamespace(
        current_ballot=_ballot(1, ballot_n),
        decided_idx=decided_idx,
        current_leader=leader,
        cluster_state=SimpleNamespace(
            accepted_indexes=list(accepted), heartbeats=list(heartbeats)
        ),
    )


def _heartbeat(pid, n, leader_pid):
    return SimpleNamespace(ballot=_ballot(pid, n), leader=_ballot(leader_pid, n))


def _dashboard(keys=()):
    screen = FakeScreen(keys)
    dash = PaxosDashboard(UIAppConfig(pid=1, peers=[2, 3]), screen=screen, clock=_clock())
    return dash, screen


def _text(renderable):
    console = Console(record=True, width=120, height=60, file=io.StringIO())
    console.print(renderable)
    return console.export_text()


def test_start_and_stop_are_idempotent():
    dash, screen = _dashboard()
    assert dash.is_started() is False
    dash.start()
    dash.start()
    assert dash.is_started() is True
    assert screen.entered == 1
    dash.stop()
    dash.stop()
    assert dash.is_started() is False
    assert screen.left == 1


def test_stop_before_start_does_not_leave_screen():
    dash, screen = _dashboard()
    dash.stop()
    assert screen.left == 0


def test_tick_ignored_when_not_started():
    dash, screen = _dashboard()
    dash.tick(_states(decided_idx=5, ballot_n=3))
    assert dash.app.decided_idx == 0
    assert dash.app.current_node.ballot_number == 0
    assert screen.draws == []


def test_tick_updates_ballot_decided_and_draws():
    dash, screen = _dashboard()
    dash.start()
    dash.tick(_states(decided_idx=5, ballot_n=3))
    assert dash.app.decided_idx == 5
    assert dash.app.current_node.ballot_number == 3
    assert dash.app.throughput_data[0] == ("5", 5)
    assert len(screen.draws) == 1


def test_active_peers_follow_heartbeats():
    dash, _ = _dashboard()
    dash.start()
    dash.tick(_states(heartbeats=[_heartbeat(2, 7, 2)]))
    peers = {p.pid: p for p in dash.app.active_peers}
    assert peers[2].connected is True
    assert peers[2].ballot_number == 7
    assert peers[2].leader == 2
    assert peers[3].connected is False
    dash.tick(_states())
    assert peers[2].connected is False


def test_leader_color_matches_leader_node():
    dash, _ = _dashboard()
    dash.start()
    dash.tick(_states(leader=2))
    expected = next(n.color for n in dash.app.nodes if n.pid == 2)
    assert dash.app.current_leader == 2
    assert dash.app.leader_color == expected
    dash.tick(_states(leader=1))
    assert dash.app.leader_color == dash.app.current_node.color
    dash.tick(_states(leader=None))
    assert dash.app.leader_color == DEFAULT_COLOR


def test_unknown_leader_raises():
    dash, _ = _dashboard()
    dash.start()
    with pytest.raises(LookupError):
        dash.tick(_states(leader=9))


def test_progress_computed_when_leader():
    dash, _ = _dashboard()
    dash.start()
    dash.tick(_states(leader=1, accepted=(0, 4, 2, 4)))
    # Progress uses the leader known before this tick.
    assert dash.app.current_role is Role.FOLLOWER
    dash.tick(_states(leader=1, accepted=(0, 4, 2, 4)))
    assert dash.app.current_role is Role.LEADER
    assert dash.app.followers_progress[2] == 2 / 4
    assert dash.app.followers_progress[3] == 1.0
    assert dash.app.followers_accepted_idx[1:] == [4, 2, 4]


def test_progress_zero_when_leader_accepted_nothing():
    dash, _ = _dashboard()
    dash.start()
    dash.tick(_states(leader=1, accepted=(0, 0, 3, 0)))
    dash.tick(_states(leader=1, accepted=(0, 0, 3, 0)))
    assert dash.app.followers_progress == [0.0, 0.0, 0.0, 0.0]
    assert dash.app.followers_accepted_idx[2] == 3


def test_follower_role_when_other_node_leads():
    dash, _ = _dashboard()
    dash.start()
    dash.tick(_states(leader=3))
    dash.tick(_states(leader=3))
    assert dash.app.current_role is Role.FOLLOWER


@pytest.mark.parametrize("key", ["q", "esc"])
def test_quit_keys_stop_dashboard(key):
    dash, screen = _dashboard()
    dash.start()
    screen.keys.append(key)
    dash.tick(_states())
    assert dash.is_started() is False
    assert screen.left == 1
    assert screen.draws == []


def test_other_key_keeps_running():
    dash, screen = _dashboard()
    dash.start()
    screen.keys.append("x")
    dash.tick(_states())
    assert dash.is_started() is True
    assert len(screen.draws) == 1


def test_drawn_dashboard_shows_title_and_log():
    dash, screen = _dashboard()
    dash.start()
    PaxosDashboard.logger().info("hello dashboard")
    dash.tick(_states(decided_idx=2))
    text = _text(screen.draws[-1])
    assert "OmniPaxos node 1" in text
    assert "hello dashboard" in text


def test_logger_is_shared():
    first = PaxosDashboard.logger()
    second = PaxosDashboard.logger()
    assert first is second
    dash, screen = _dashboard()
    dash.start()
    first.info("shared logger line")
    dash.tick(_states())
    assert "shared logger line" in _text(screen.draws[-1])