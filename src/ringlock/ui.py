import logging
from collections import deque
from typing import Literal, Optional, Sequence

from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ringlock.bits import overlap_indices, pin_indices
from ringlock.state_snapshot import GameSnapshot

COLORS = {
    "filled": "steel_blue1",
    "hole": "grey30",
    "highlight": "aquamarine1",
    "invalid": "indian_red1",
    "complete": "dark_sea_green4",
    "dim": "grey37",
    "pin": "aquamarine1",
}

# Newest game events for the log panel: (level, logger suffix, message).
EVENT_LOG: deque = deque(maxlen=200)
EVENT_STYLE = {
    logging.DEBUG: COLORS["dim"],
    logging.WARNING: COLORS["highlight"],
    logging.ERROR: COLORS["invalid"],
    logging.CRITICAL: f"bold {COLORS['invalid']}",
}

CELL_FILLED = "█"
CELL_HOLE = "·"
CELL_PIN = "◆"

type RingState = Literal["active", "inactive", "complete"]


def format_time(seconds: float) -> str:
    """Format elapsed seconds as m:ss."""
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


class GameLogHandler(logging.Handler):
    """Keeps recent game events in memory for the panel under the board."""

    def __init__(self, events: deque, level: int = logging.NOTSET):
        super().__init__(level)
        self.events = events

    def emit(self, record: logging.LogRecord) -> None:
        source = record.name.rsplit(".", 1)[-1]
        self.events.append((record.levelno, source, self.format(record)))


def event_log_handler() -> GameLogHandler:
    handler = GameLogHandler(EVENT_LOG)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def render_log_panel(max_lines: int, title: str = "Events") -> Panel:
    """Show the newest events, padded to a fixed height so the board does not jump."""
    events = list(EVENT_LOG)[-max_lines:]
    grid = Table.grid(padding=(0, 1))
    grid.add_column(no_wrap=True, style=COLORS["dim"])
    grid.add_column(no_wrap=True, overflow="crop")
    for _ in range(max_lines - len(events)):
        grid.add_row("", "")
    for level, source, message in events:
        style = EVENT_STYLE.get(level)
        grid.add_row(source, _styled(escape(message), style) if style else escape(message))
    return Panel(grid, title=title, padding=(0, 1))


def ring_to_string(
    ring: Sequence[int],
    ring_state: RingState,
    rotated_key: Optional[Sequence[int]] = None,
    can_slot: bool = False,
) -> str:
    """Convert a ring to a row of colored cells."""
    highlight = set(pin_indices(rotated_key)) if rotated_key is not None and can_slot else set()
    invalid = set()
    if rotated_key is not None and not can_slot:
        invalid = set(overlap_indices(rotated_key, ring))

    cells = []
    for i, v in enumerate(ring):
        glyph = CELL_FILLED if v == 1 else CELL_HOLE
        if ring_state == "complete":
            style = COLORS["complete"]
        elif ring_state == "inactive":
            style = COLORS["dim"]
        elif i in highlight:
            glyph, style = CELL_PIN, COLORS["highlight"]
        elif i in invalid:
            style = COLORS["invalid"]
        else:
            style = COLORS["filled"] if v == 1 else COLORS["hole"]
        cells.append(_styled(glyph, style))
    return " ".join(cells)


def key_to_string(key: Sequence[int]) -> str:
    """Show the pins of a key, blank where it has none."""
    return " ".join(_styled(CELL_PIN, COLORS["pin"]) if v == 1 else " " for v in key)


def render_key_tray(state: GameSnapshot) -> Table:
    tray = Table(show_header=True, show_edge=False, padding=(0, 1))
    tray.add_column("#", justify="right", style="dim")
    tray.add_column("Key")
    for idx, key in enumerate(state.keys):
        label = str(idx + 1)
        if state.key_used[idx]:
            tray.add_row(_styled(label, "dim"), _styled("used", "dim"))
        elif idx == state.selected_key:
            tray.add_row(_styled(label, "bold yellow"), key_to_string(key))
        else:
            tray.add_row(label, key_to_string(key))
    return tray


def render(state: Optional[GameSnapshot]):
    """Render the play state snapshot."""
    if state is None:
        return Panel("Waiting for first update…", title="Ring Lock", border_style="dim")

    hud = (
        f"{state.difficulty}  |  Score {state.score}  |  Time {format_time(state.seconds)}"
        f"  |  Moves {state.moves}  |  {state.rings_remaining} ring"
        f"{'' if state.rings_remaining == 1 else 's'} remaining"
    )

    rings_table = Table(show_header=True, show_edge=False)
    rings_table.add_column("Ring", justify="right")
    rings_table.add_column("Cells")

    if state.rotated_key is not None:
        rotation = state.rotation % state.bits if state.bits else 0
        rings_table.add_row(_styled(f"key ↻{rotation}", "bold"), key_to_string(state.rotated_key))

    # Outermost ring first, matching the way the lock is read from outside in.
    for ring_index in range(len(state.rings) - 1, -1, -1):
        ring = state.rings[ring_index]
        if all(v == 1 for v in ring):
            ring_state = "complete"
        elif ring_index == state.active_ring_index:
            ring_state = "active"
        else:
            ring_state = "inactive"
        rotated = state.rotated_key if ring_state == "active" else None
        rings_table.add_row(str(ring_index), ring_to_string(ring, ring_state, rotated, state.can_slot))

    if state.can_slot:
        status = _styled("Aligned: slot the key", COLORS["highlight"])
    elif state.is_invalid:
        status = _styled("Blocked: pins hit filled cells", COLORS["invalid"])
    else:
        status = _styled("Select a key", "dim")

    parts = [hud, rings_table, status]
    if state.flash_message:
        parts.append(_styled(state.flash_message, "bold magenta"))
    parts.append(render_key_tray(state))
    return Panel(Group(*parts), title="Ring Lock", padding=(1, 1))


def render_win(state: GameSnapshot) -> Panel:
    """Render the end-of-game summary."""
    summary = Table(show_header=False, show_edge=False, padding=(0, 2))
    summary.add_column("Stat", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Score", str(state.score))
    summary.add_row("Time", format_time(state.seconds))
    summary.add_row("Moves", str(state.moves))
    summary.add_row("Difficulty", str(state.difficulty))
    summary.add_row("Bits", str(state.bits))
    summary.add_row("Rings", str(len(state.rings)))
    summary.add_row("Keys", f"{state.keys_used_count} / {len(state.keys)}")
    return Panel(summary, title="Unlocked", border_style="green", padding=(1, 1))
