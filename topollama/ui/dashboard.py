from collections import deque

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from topollama.core.logging import DiagnosticEvent
from topollama.ui.base import TABLE_ALIGN, TABLE_HEADERS, ChartSeries, Display, TableRow
from topollama.ui.charts import LineChart

LOG_LINES = 6
COLUMN_WIDTHS = (28, 12, 10, 10, 8, 8)
EMPTY_ROW = "No models running"
KEY_HINT = "q quit · r refresh"

_SEVERITY_STYLE = {
    "debug": "dim",
    "info": "green",
    "warning": "yellow",
    "error": "bold red",
    "critical": "bold red",
}


class Dashboard(Display):
    """Full-screen rich dashboard: model table, two history charts, event log."""

    def __init__(self, console: Console | None = None, log_lines: int = LOG_LINES):
        self.console = console or Console()
        self._rows: list[TableRow] = []
        self._processor_series: list[ChartSeries] = []
        self._memory_series: list[ChartSeries] = []
        self._log: deque[DiagnosticEvent] = deque(maxlen=log_lines)
        self._live: Live | None = None

    def __enter__(self) -> "Dashboard":
        self._live = Live(
            self.build(),
            console=self.console,
            screen=True,
            auto_refresh=False,
        )
        self._live.start()
        return self

    def __exit__(self, *exc) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    # ── Display ──────────────────────────────────────────────────────────────

    def show_models(self, rows: list[TableRow]) -> None:
        self._rows = list(rows)

    def show_history(self, processor: list[ChartSeries], memory: list[ChartSeries]) -> None:
        self._processor_series = list(processor)
        self._memory_series = list(memory)

    def log(self, event: DiagnosticEvent) -> None:
        self._log.append(event)

    def render(self) -> None:
        if self._live is not None:
            self._live.update(self.build(), refresh=True)

    # ── Layout ───────────────────────────────────────────────────────────────

    def build(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="models", ratio=7),
            Layout(name="charts", ratio=5),
            Layout(name="log", size=LOG_LINES + 2),
        )
        layout["charts"].split_row(
            Layout(name="processor"),
            Layout(name="memory"),
        )

        layout["models"].update(self._models_panel())
        layout["processor"].update(self._chart_panel(
            "CPU / GPU Usage History", self._processor_series, "cyan", y_max=100,
        ))
        layout["memory"].update(self._chart_panel(
            "Memory Usage History", self._memory_series, "yellow",
        ))
        layout["log"].update(self._log_panel())
        return layout

    def _models_panel(self) -> Panel:
        table = Table(expand=True, box=None, pad_edge=False, header_style="bold")
        for header, align, width in zip(TABLE_HEADERS, TABLE_ALIGN, COLUMN_WIDTHS):
            table.add_column(header, justify=align, min_width=width, no_wrap=True)

        if not self._rows:
            table.add_row(EMPTY_ROW, *([""] * (len(TABLE_HEADERS) - 1)), style="dim")
        for row in self._rows:
            table.add_row(*row.cells, style="red" if row.highlight else None)

        return Panel(
            table,
            title="[bold] Running Models [/bold]",
            subtitle=f"[dim]{KEY_HINT}[/dim]",
            border_style="blue",
        )

    def _chart_panel(
        self, title: str, series: list[ChartSeries], colour: str, y_max: float | None = None,
    ) -> Panel:
        return Panel(
            LineChart(series, y_max=y_max),
            title=f"[bold {colour}] {title} [/bold {colour}]",
            border_style=colour,
        )

    def _log_panel(self) -> Panel:
        text = Text()
        for i, event in enumerate(self._log):
            if i:
                text.append("\n")
            clock = event.timestamp[11:19] if len(event.timestamp) >= 19 else event.timestamp
            text.append(f"{clock} ", style="dim")
            text.append(event.message, style=_SEVERITY_STYLE.get(event.severity, ""))
        return Panel(text, title="[bold green] Events & Logs [/bold green]", border_style="green")
