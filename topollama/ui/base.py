from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel

from topollama.core.logging import DiagnosticEvent

TABLE_HEADERS = ("Model", "ID", "DISK", "MEM", "CPU%", "GPU%")
TABLE_ALIGN: tuple[Literal["left", "right"], ...] = ("left", "left", "right", "right", "right", "right")


class TableRow(BaseModel):
    cells: tuple[str, ...]
    highlight: bool = False


class ChartSeries(BaseModel):
    title: str
    points: list[tuple[str, float]]
    color: str = "cyan"

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.points]

    @property
    def values(self) -> list[float]:
        return [value for _, value in self.points]


class Display(ABC):
    """What the refresh loop needs from a screen. Implementations only read."""

    @abstractmethod
    def show_models(self, rows: list[TableRow]) -> None:
        ...

    @abstractmethod
    def show_history(self, processor: list[ChartSeries], memory: list[ChartSeries]) -> None:
        """Replace the CPU/GPU chart and the memory chart series."""
        ...

    @abstractmethod
    def log(self, event: DiagnosticEvent) -> None:
        ...

    @abstractmethod
    def render(self) -> None:
        ...
