import plotext as plt
from rich.console import Console, ConsoleOptions, RenderResult
from rich.text import Text

from topollama.ui.base import ChartSeries

DEFAULT_HEIGHT = 12
MIN_WIDTH = 20
MIN_HEIGHT = 5
X_TICKS = 5


class LineChart:
    """Rich renderable drawing one or more series with plotext.

    The figure is rebuilt at render time so it always fills the region the
    layout gives it.
    """

    def __init__(self, series: list[ChartSeries], y_min: float = 0, y_max: float | None = None):
        self.series = series
        self.y_min = y_min
        self.y_max = y_max

    def build(self, width: int, height: int) -> str:
        plt.clf()
        plt.theme("clear")
        plt.plotsize(max(width, MIN_WIDTH), max(height, MIN_HEIGHT))

        labels = self.series[0].labels if self.series else []
        xs = list(range(len(labels)))
        for s in self.series:
            plt.plot(xs, s.values, label=s.title, color=s.color, marker="braille")

        if labels:
            step = max(1, len(labels) // X_TICKS)
            ticks = xs[::step]
            plt.xticks(ticks, [labels[i] for i in ticks])
        if self.y_max is not None:
            plt.ylim(self.y_min, self.y_max)
        return plt.build()

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height or DEFAULT_HEIGHT
        yield Text.from_ansi(self.build(options.max_width, height))
