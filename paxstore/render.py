"""Terminal rendering of the dashboard state."""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

from rich.console import Console, ConsoleOptions, Group, RenderResult
from rich.layout import Layout
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.style import Style
from rich.table import Table
from rich.text import Text

from .app import (
    ORANGE,
    UI_BARCHART_GAP,
    UI_BARCHART_WIDTH,
    UI_CLUSTER_INFO_TITLE,
    UI_LOGGING_TITLE,
    UI_NODE_INFO_TITLE,
    UI_TABLE_CONTENT_HEIGHT,
    UI_TABLE_ROW_MARGIN,
    UI_TABLE_TITLE,
    UI_THROUGHPUT_TITLE,
    UI_TITLE,
    App,
    Role,
)

PID = "PID"
BALLOT = "Ballot"
LEADER = "Leader"
CONNECTED = "Connected"
ACCEPTED_IDX = "Accepted idx"

_U64_MAX = 2**64 - 1


def render(app: App, width: int, log_lines: Iterable[str] = ()) -> Layout:
    """Build the dashboard for the node's current role."""
    if app.current_role is Role.LEADER:
        return render_leader(app, width, log_lines)
    return render_follower(app, width, log_lines)


def render_follower(app: App, width: int, log_lines: Iterable[str] = ()) -> Layout:
    """Build the dashboard shown while the node is a follower."""
    info = Layout(name="info", size=8)
    info.split_row(Layout(_cluster_info(app)), Layout(_follower_info(app)))
    body = Layout(name="body", minimum_size=10)
    body.split_row(Layout(_logging(log_lines)), Layout(_follower_table(app)))

    layout = Layout()
    layout.split_column(
        Layout(_title(app), size=3),
        Layout(_chart(app, width), size=10),
        info,
        body,
    )
    return layout


def render_leader(app: App, width: int, log_lines: Iterable[str] = ()) -> Layout:
    """Build the dashboard shown while the node is the leader."""
    info = Layout(name="info", size=8)
    info.split_row(Layout(_cluster_info(app)), Layout(_leader_info(app)))

    table_area = Layout(name="peers")
    table_area.split_row(
        Layout(_leader_table(app), ratio=3),
        Layout(_progress(app), ratio=1),
    )
    body = Layout(name="body", minimum_size=len(app.nodes))
    body.split_row(Layout(_logging(log_lines)), table_area)

    layout = Layout()
    layout.split_column(
        Layout(_title(app), size=3),
        Layout(_chart(app, width), size=10),
        info,
        body,
    )
    return layout


def chart_data(app: App, window_width: int) -> List[Tuple[str, int]]:
    """Bars that fit into ``window_width`` columns, newest first."""
    count = window_width // (UI_BARCHART_WIDTH + UI_BARCHART_GAP)
    return [
        (label, num) if num > 0 else ("", 0)
        for label, num in app.throughput_data[:count]
    ]


def connected_symbol(connected: bool) -> str:
    """Symbol shown in the table for a connected or disconnected peer."""
    return "\u2705" if connected else "\u274c"


def ballot_and_leader_strings(
    connected: bool, ballot: int, leader: int
) -> Tuple[str, str]:
    """Ballot and leader cells; unknown for a disconnected peer."""
    if connected:
        return str(ballot), str(leader)
    return "\u2753", "\u2753"


def gauge_color(ratio: float) -> str:
    """Colour of a follower's progress gauge."""
    if 0.9 < ratio <= 1.0:
        return "green"
    if 0.75 < ratio <= 0.9:
        return "bright_yellow"
    if 0.5 < ratio <= 0.75:
        return ORANGE
    if 0.0 <= ratio <= 0.5:
        return "bright_red"
    return "white"


def _as_u64(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value) or value >= _U64_MAX:
        return _U64_MAX
    return int(value)


def _title(app: App) -> Panel:
    text = Text(
        f"{UI_TITLE} node {app.current_node.pid} "
        "(press 'q' or 'esc' to exit the dashboard)",
        style="bright_cyan",
        justify="center",
    )
    return Panel(text, border_style="white")


class _BarChart:
    """Vertical bars with their labels underneath."""

    def __init__(self, data: Sequence[Tuple[str, int]], color: str) -> None:
        self._data = list(data)
        self._color = color

    def __rich_console__(
        self, console: Console, options: ConsoleOptions
    ) -> RenderResult:
        height = options.height or 8
        rows = max(height - 1, 1)
        if not self._data:
            return
        top = max(num for _, num in self._data) or 1
        heights = [round(num / top * rows) for _, num in self._data]
        gap = " " * UI_BARCHART_GAP
        bar = "\u2588" * UI_BARCHART_WIDTH
        empty = " " * UI_BARCHART_WIDTH
        bar_style = Style(color=self._color)
        for row in range(rows, 0, -1):
            line = Text(no_wrap=True, overflow="crop")
            for position, bar_height in enumerate(heights):
                if position:
                    line.append(gap)
                line.append(bar if bar_height >= row else empty, style=bar_style)
            yield line
        labels = Text(no_wrap=True, overflow="crop")
        for position, (label, _) in enumerate(self._data):
            if position:
                labels.append(gap)
            labels.append(
                label[:UI_BARCHART_WIDTH].ljust(UI_BARCHART_WIDTH), style="yellow"
            )
        yield labels


def _chart(app: App, window_width: int) -> Panel:
    title = Text.assemble(
        (f"{UI_THROUGHPUT_TITLE}: {_as_u64(app.dps)} req/s", "bold white"),
        (" (# reqs/tick)", "bold yellow"),
    )
    return Panel(
        _BarChart(chart_data(app, window_width), app.leader_color),
        title=title,
        title_align="left",
    )


def _cluster_info(app: App) -> Panel:
    lines = Text(justify="center", style="bright_cyan")
    lines.append("\n")
    if app.current_leader is None:
        lines.append("No leader yet")
    else:
        lines.append("Current Leader: ")
        lines.append(
            f" {app.current_leader} ",
            style=Style(color="white", bgcolor=app.leader_color),
        )
    lines.append("\nNodes:")
    for node in app.nodes:
        lines.append(" ")
        lines.append(f" {node.pid} ", style=Style(color="white", bgcolor=node.color))
    return Panel(lines, title=UI_CLUSTER_INFO_TITLE, border_style="white")


def _node_info_panel(text: str) -> Panel:
    return Panel(
        Text(text, style="bright_cyan", justify="center"),
        title=UI_NODE_INFO_TITLE,
        border_style="white",
    )


def _follower_info(app: App) -> Panel:
    return _node_info_panel(
        f"\nNode Id: {app.current_node.pid}\nRole: {app.current_role}"
        f"\nBallot: {app.current_node.ballot_number}"
        f"\nDecided idx: {app.decided_idx}"
    )


def _leader_info(app: App) -> Panel:
    accepted = app.followers_accepted_idx[app.current_node.pid]
    return _node_info_panel(
        f"\nNode Id: {app.current_node.pid}\nRole: {app.current_role}"
        f"\nBallot: {app.current_node.ballot_number}"
        f"\nDecided idx: {app.decided_idx}\nAccepted idx: {accepted}"
    )


class _LogTail:
    """The most recent log lines that fit into the available height."""

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = list(lines)

    def __rich_console__(
        self, console: Console, options: ConsoleOptions
    ) -> RenderResult:
        height = options.height or len(self._lines)
        shown = self._lines[-height:] if height else []
        for line in shown:
            yield Text(line, no_wrap=True, overflow="ellipsis")


def _logging(log_lines: Iterable[str]) -> Panel:
    return Panel(_LogTail(list(log_lines)), title=UI_LOGGING_TITLE, border_style="white")


def _peer_table(headers: Sequence[str], ratios: Sequence[int]) -> Table:
    table = Table(
        expand=True,
        box=None,
        leading=UI_TABLE_ROW_MARGIN,
        header_style="bold bright_cyan",
        style="white",
    )
    for header, ratio in zip(headers, ratios):
        table.add_column(header, ratio=ratio, no_wrap=True)
    return table


def _peer_cells(app: App) -> Iterable[Tuple[object, List[object]]]:
    for peer in app.active_peers:
        ballot, leader = ballot_and_leader_strings(
            peer.connected, peer.ballot_number, peer.leader
        )
        cells: List[object] = [
            Text(f" {peer.pid} ", style=Style(color="white", bgcolor=peer.color)),
            connected_symbol(peer.connected),
            ballot,
            leader,
        ]
        yield peer, cells


def _follower_table(app: App) -> Panel:
    table = _peer_table([PID, CONNECTED, BALLOT, LEADER], [25, 25, 25, 25])
    for _, cells in _peer_cells(app):
        table.add_row(*cells)
    return Panel(table, title=UI_TABLE_TITLE)


def _leader_table(app: App) -> Panel:
    table = _peer_table(
        [PID, CONNECTED, BALLOT, LEADER, ACCEPTED_IDX], [17, 17, 17, 17, 32]
    )
    for peer, cells in _peer_cells(app):
        cells.append(str(app.followers_accepted_idx[peer.pid]))
        table.add_row(*cells)
    return Panel(table, title=UI_TABLE_TITLE)


def _gauge(ratio: float) -> Table:
    if not 0.0 <= ratio <= 1.0:
        raise ValueError("Ratio should be between 0 and 1 inclusively.")
    style = Style(color=gauge_color(ratio), bold=True, italic=True)
    grid = Table.grid(expand=True)
    grid.add_column(ratio=1)
    grid.add_column(justify="right", width=5)
    grid.add_row(
        ProgressBar(
            total=1.0, completed=ratio, complete_style=style, finished_style=style
        ),
        Text(f"{round(ratio * 100)}%"),
    )
    return grid


def _progress(app: App) -> Panel:
    row_height = UI_TABLE_CONTENT_HEIGHT + UI_TABLE_ROW_MARGIN
    items: List[object] = []
    if app.active_peers:
        # The first row lines up with the table header.
        items.extend(Text("") for _ in range(row_height))
        for peer in app.active_peers:
            items.extend(Text("") for _ in range(row_height - UI_TABLE_CONTENT_HEIGHT))
            items.append(_gauge(app.followers_progress[peer.pid]))
    return Panel(Group(*items), title="Progress")