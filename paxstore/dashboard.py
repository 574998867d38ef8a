"""Terminal dashboard that shows the state of a consensus node."""

from __future__ import annotations

import logging
import sys
import time
from collections import deque
from contextlib import ExitStack
from typing import Any, Callable, Deque, List, Optional, Protocol

from rich.console import Console, RenderableType

from .app import App, Role, UIAppConfig
from .render import render

_LOGGER_NAME = "paxstore.ui"
_LOG_CAPACITY = 1000
_LOG_FORMAT = "%(asctime)s|%(levelname)s|%(lineno)d|%(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_ESCAPE = "esc"
_QUIT = "q"

_MOUSE_ON = "\x1b[?1000h"
_MOUSE_OFF = "\x1b[?1000l"


class _UILogHandler(logging.Handler):
    """Keeps the most recent formatted log lines for the log panel."""

    def __init__(self, capacity: int = _LOG_CAPACITY) -> None:
        super().__init__(level=logging.DEBUG)
        self.lines: Deque[str] = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.lines.append(self.format(record))
        except Exception:
            self.handleError(record)


_LOG_HANDLER = _UILogHandler()


class _Screen(Protocol):
    """What the dashboard needs from the terminal."""

    width: int

    def enter(self) -> None: ...

    def leave(self) -> None: ...

    def read_key(self) -> Optional[str]: ...

    def draw(self, renderable: RenderableType) -> None: ...


class _TerminalScreen:
    """Full-screen terminal with unbuffered key input."""

    def __init__(self) -> None:
        import blessed

        self._term = blessed.Terminal()
        self._stack = ExitStack()

    @property
    def width(self) -> int:
        return self._term.width

    def _write(self, text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def enter(self) -> None:
        self._write(self._term.enter_fullscreen + _MOUSE_ON)
        self._stack.enter_context(self._term.cbreak())
        self._write(self._term.hide_cursor)

    def leave(self) -> None:
        self._stack.close()
        self._write(_MOUSE_OFF + self._term.exit_fullscreen + self._term.normal_cursor)

    def read_key(self) -> Optional[str]:
        key = self._term.inkey(timeout=0)
        if not key:
            return None
        if key.is_sequence:
            return _ESCAPE if key.code == self._term.KEY_ESCAPE else key.name
        return str(key)

    def draw(self, renderable: RenderableType) -> None:
        console = Console(
            file=sys.stdout, width=self._term.width, height=self._term.height
        )
        self._write(self._term.home)
        console.print(renderable, end="")


class PaxosDashboard:
    """A terminal dashboard together with the state it visualizes."""

    def __init__(
        self,
        config: UIAppConfig,
        screen: Optional[_Screen] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.app = App(config, clock=clock)
        self._screen: _Screen = screen if screen is not None else _TerminalScreen()
        self._started = False

    @classmethod
    def logger(cls) -> logging.Logger:
        """Logger whose records are shown in the dashboard's log panel."""
        logger = logging.getLogger(_LOGGER_NAME)
        if _LOG_HANDLER not in logger.handlers:
            logger.addHandler(_LOG_HANDLER)
            logger.setLevel(logging.DEBUG)
            logger.propagate = False
        return logger

    def start(self) -> None:
        """Start the dashboard; does nothing if already started."""
        if self._started:
            return
        self._screen.enter()
        self._update_ui()
        self._started = True
        self.logger().debug("UI started")

    def stop(self) -> None:
        """Stop the dashboard; does nothing if already stopped."""
        if self._started:
            self._screen.leave()
            self._started = False

    def is_started(self) -> bool:
        """Whether the dashboard is running."""
        return self._started

    def _update_ui(self) -> None:
        if self._screen.read_key() in (_ESCAPE, _QUIT):
            self.stop()
        if self._started:
            self._screen.draw(
                render(self.app, self._screen.width, list(_LOG_HANDLER.lines))
            )

    def _update_progress(self, states: Any) -> None:
        leader_id = self.app.current_leader
        if leader_id is None:
            return
        if leader_id != self.app.current_node.pid:
            self.app.current_role = Role.FOLLOWER
            return
        self.app.current_role = Role.LEADER
        accepted_indexes: List[int] = list(states.cluster_state.accepted_indexes)
        leader_acc_idx = accepted_indexes[leader_id]
        for idx, accepted_idx in enumerate(accepted_indexes):
            self.app.followers_progress[idx] = (
                0.0 if leader_acc_idx == 0 else accepted_idx / leader_acc_idx
            )
            self.app.followers_accepted_idx[idx] = accepted_idx

    def _update_active_peers(self, states: Any) -> None:
        heartbeats = list(states.cluster_state.heartbeats)
        for node in self.app.active_peers:
            heartbeat = next(
                (hb for hb in heartbeats if hb.ballot.pid == node.pid), None
            )
            if heartbeat is None:
                node.connected = False
            else:
                node.ballot_number = heartbeat.ballot.n
                node.leader = heartbeat.leader.pid
                node.connected = True

    def _update_leader(self, states: Any) -> None:
        leader_id = states.current_leader
        self.app.current_leader = leader_id
        if leader_id is None:
            self.app.leader_color = self.app.current_node.__class__().color
        elif leader_id == self.app.current_node.pid:
            self.app.leader_color = self.app.current_node.color
        else:
            leader = next((n for n in self.app.nodes if n.pid == leader_id), None)
            if leader is None:
                raise LookupError(f"leader {leader_id} is not a node of the cluster")
            self.app.leader_color = leader.color

    def tick(self, states: Any) -> None:
        """Update and redraw from the latest node states, if started."""
        if not self._started:
            return
        self.app.current_node.ballot_number = states.current_ballot.n
        self.app.set_decided_idx(states.decided_idx)
        self._update_progress(states)
        self._update_active_peers(states)
        self._update_leader(states)
        self._update_ui()