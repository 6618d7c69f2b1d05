"""Rich rendering of the navigation state.

:func:`render` turns the current :class:`NavigationStateMachine` state
into one Rich renderable for :class:`rich.live.Live`.  Nothing here
mutates state; the seat-grid helpers are pure and tested directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.spinner import Spinner
from rich.text import Text

from ingresso_finder.core.geo import location_label
from ingresso_finder.core.listing import ListModel
from ingresso_finder.core.models import Seat, SeatMap
from ingresso_finder.core.navigation import NavigationStateMachine
from ingresso_finder.core.screens import (
    ErrorScreen,
    LoadingCities,
    LoadingSeatMap,
    LoadingSessions,
    LoadingTheaters,
    ManageTheaters,
    Screen,
    SelectCity,
    SelectDate,
    SelectMovie,
    SelectSection,
    SelectTheater,
    ShowSeatMap,
    ShowSessions,
    is_loading,
    screen_city,
    screen_theater,
)
from ingresso_finder.core.seat_scorer import compute_seat_counts, front_line_set

TITLE = "Ingresso Finder"

SEAT_STYLES = {
    "[]": "green",
    "XX": "red",
    "##": "bright_black",
    "DD": "yellow",
}
FRONT_STYLE = "bold yellow"

LEGEND_TOKENS = (
    "Legend: [] available • XX occupied • DD accessibility • ## blocked • front rows (not ideal)"
)
LEGEND_NUMBERS = "Legend: color shows status • numbers are seat labels • front rows in yellow"


# ---------------------------------------------------------------------------
# Seat grid (pure)
# ---------------------------------------------------------------------------

def seat_token(seat: Seat) -> tuple[str, str]:
    """Return ``(token, status)`` for one seat."""
    status = seat.normalized_status
    if status == "occupied":
        return "XX", status
    if status == "available":
        return ("DD" if seat.is_accessible else "[]"), status
    if status == "blocked":
        return "##", status
    return "  ", status


def seat_row_label(seat: Seat) -> str:
    """A single capital letter from the seat label, else the line number."""
    parts = seat.label.split()
    if parts and len(parts[0]) == 1 and "A" <= parts[0] <= "Z":
        return parts[0]
    return str(seat.line) if seat.line > 0 else ""


def seat_number_label(seat: Seat) -> str:
    parts = seat.label.split()
    return parts[-1] if parts else ""


@dataclass(frozen=True, slots=True)
class SeatCell:
    token: str = "  "
    status: str = "unknown"
    label: str = ""
    front: bool = False


@dataclass(frozen=True, slots=True)
class SeatGrid:
    """Trimmed grid: only the bounding box of real seats."""

    rows: tuple[tuple[str, tuple[SeatCell, ...]], ...]
    row_width: int
    cell_width: int

    @property
    def width(self) -> int:
        if not self.rows:
            return 0
        columns = len(self.rows[0][1])
        return columns * (self.cell_width + 1) - 1


def build_seat_grid(seat_map: SeatMap, show_numbers: bool) -> SeatGrid | None:
    """Lay *seat_map* out as labelled rows; ``None`` when there is nothing to draw."""
    lines, columns = seat_map.lines, seat_map.columns
    if lines <= 0 or columns <= 0:
        return None

    front = front_line_set(seat_map)
    cells: dict[tuple[int, int], SeatCell] = {}
    labels: dict[int, str] = {}
    for seat in seat_map.iter_seats():
        r, c = seat.line - 1, seat.column - 1
        if r < 0 or c < 0 or r >= lines or c >= columns:
            continue
        labels.setdefault(r, seat_row_label(seat))
        token, status = seat_token(seat)
        cells[(r, c)] = SeatCell(token, status, seat_number_label(seat), seat.line in front)
    if not cells:
        return None

    min_row = min(r for r, _ in cells)
    max_row = max(r for r, _ in cells)
    min_col = min(c for _, c in cells)
    max_col = max(c for _, c in cells)

    row_width = max([2, *(len(label) for label in labels.values())])
    cell_width = 2
    if show_numbers:
        cell_width = max([2, *(len(cell.label) for cell in cells.values())])

    rows = []
    for r in range(min_row, max_row + 1):
        label = labels.get(r) or str(r + 1)
        row = tuple(cells.get((r, c), SeatCell()) for c in range(min_col, max_col + 1))
        rows.append((label, row))
    return SeatGrid(tuple(rows), row_width, cell_width)


def seat_counts_line(seat_map: SeatMap) -> str:
    c = compute_seat_counts(seat_map)
    percent = c.available / max(1, c.total) * 100
    return (
        f"Available: {c.available} • Ideal: {c.ideal_available} • "
        f"Front: {c.non_ideal_available} • Pairs: {c.pair_available} • "
        f"Occupied: {c.occupied} • Blocked: {c.blocked} • Total: {c.total} • "
        f"{percent:.0f}% available"
    )


# ---------------------------------------------------------------------------
# Renderables
# ---------------------------------------------------------------------------

def _hints(screen: Screen) -> str:
    if isinstance(screen, SelectCity):
        return "enter select • type to filter • ctrl+d date • q quit"
    if isinstance(screen, SelectTheater):
        return (
            "enter select • ctrl+f all theaters • ctrl+t manage • "
            "ctrl+l location • ctrl+d date • esc back"
        )
    if isinstance(screen, ManageTheaters):
        return "x/enter toggle • ctrl+l location • esc back • q quit"
    if isinstance(screen, SelectMovie):
        return "enter sessions • ctrl+d date • esc back"
    if isinstance(screen, ShowSessions):
        return "enter checkout • tab seat map • ctrl+d date • esc back"
    if isinstance(screen, SelectSection):
        return "enter select • esc back"
    if isinstance(screen, ShowSeatMap):
        return "n toggle seat numbers • esc back • q quit"
    if isinstance(screen, SelectDate):
        return "enter pick • esc back • q quit"
    if isinstance(screen, ErrorScreen):
        if screen.suggest_next_day:
            return "enter try next day • ctrl+d pick date • esc back"
        return "enter/esc back • q quit"
    return "ctrl+c quit"


def render_header(machine: NavigationStateMachine) -> RenderableType:
    screen = machine.screen
    crumbs = [TITLE]
    city = screen_city(screen)
    if city is not None:
        crumbs.append(city.name)
    theater = screen_theater(screen)
    if theater is not None:
        crumbs.append(theater.name)
    elif isinstance(screen, (LoadingSessions, SelectMovie, ShowSessions)):
        crumbs.append("All Theaters")
    crumbs.append(machine.on_date.strftime("%a %d/%m"))

    header = Text(" › ".join(crumbs), style="bold cyan")
    place = location_label(machine.location)
    if place:
        header.append(f"\n{place}", style="dim")
    header.append(f"\n{_hints(screen)}", style="dim")
    return header


def render_list(model: ListModel[Any]) -> RenderableType:
    lines = Text()
    lines.append(model.title, style="bold magenta")
    if model.filtering_enabled:
        lines.append(f"\nfilter: {model.filter_text}", style="dim" if not model.is_filtered else "yellow")
    else:
        lines.append("\n")

    start, _ = model.page_bounds()
    page = model.page()
    if not page:
        lines.append("\n\n  no items", style="dim")
    for offset, item in enumerate(page):
        selected = start + offset == model.index
        marker = "› " if selected else "  "
        lines.append(f"\n{marker}{item.title}", style="bold" if selected else "")
        description = item.description
        lines.append(f"\n  {description}" if description else "\n", style="dim")
        lines.append("\n")
    lines.append(f"\npage {model.page_number + 1}/{model.page_count}", style="dim")
    return lines


def render_seat_map(seat_map: SeatMap, show_numbers: bool) -> RenderableType:
    grid = build_seat_grid(seat_map, show_numbers)
    if grid is None:
        return Text("No seat map data.", style="dim")

    text = Text()
    for label, row in grid.rows:
        text.append(f"{label:>{grid.row_width}} ")
        for index, cell in enumerate(row):
            content = cell.label if show_numbers and cell.label else cell.token
            style = SEAT_STYLES.get(cell.token, "")
            if cell.token == "[]" and cell.front:
                style = FRONT_STYLE
            text.append(f"{content:^{grid.cell_width}}", style=style)
            if index < len(row) - 1:
                text.append(" ")
        text.append(f" {label:>{grid.row_width}}\n")

    pad = " " * (grid.row_width + 1)
    width = max(grid.width, len("SCREEN") + 2)
    text.append(f"\n{pad}")
    text.append("▁" * width, style="color(214) on color(236)")
    text.append(f"\n{pad}")
    text.append(f"{'SCREEN':^{width}}", style="bold black on color(214)")
    text.append(f"\n{pad}")
    text.append("▔" * width, style="color(214) on color(236)")
    text.append(f"\n{pad}Front / Screen\n\n", style="dim")
    text.append(LEGEND_NUMBERS if show_numbers else LEGEND_TOKENS, style="dim")
    text.append(f"\n{seat_counts_line(seat_map)}", style="dim")
    return text


def render_error(screen: ErrorScreen) -> RenderableType:
    body = Text(screen.message, style="bold")
    if screen.hint:
        body.append(f"\n{screen.hint}", style="yellow")
    if screen.suggest_next_day:
        body.append("\n\nPress enter to try the next day.", style="cyan")
        return Panel(body, title="No sessions", border_style="yellow")
    return Panel(body, title="Error", border_style="red")


def _loading_text(screen: Screen) -> str:
    if isinstance(screen, LoadingCities):
        return "Loading cities…"
    if isinstance(screen, LoadingTheaters):
        return f"Loading theaters in {screen.city.name}…"
    if isinstance(screen, LoadingSessions):
        if screen.theater is None:
            return "Loading sessions across visible theaters…"
        return f"Loading sessions at {screen.theater.name}…"
    if isinstance(screen, LoadingSeatMap):
        return "Loading seat map…"
    return "Loading…"


def render_body(machine: NavigationStateMachine) -> RenderableType:
    screen = machine.screen
    if isinstance(screen, ErrorScreen):
        return render_error(screen)
    if isinstance(screen, ShowSeatMap):
        title = Text(f"{screen.section.name}", style="bold magenta")
        return Group(title, Text(""), render_seat_map(screen.seat_map, machine.show_seat_numbers))
    if is_loading(screen):
        return Spinner("dots", text=_loading_text(screen))
    active = machine.active_list()
    if active is None:
        return Text("")
    return render_list(active)


def render(machine: NavigationStateMachine) -> RenderableType:
    parts: Sequence[RenderableType] = (render_header(machine), Text(""), render_body(machine))
    return Group(*parts)
