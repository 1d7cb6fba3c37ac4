from collections import deque
from datetime import datetime, timedelta
from typing import Literal

from topollama.schemas.system import SystemSnapshot

HISTORY_LENGTH = 100
LABEL_FORMAT = "%H:%M:%S"

Metric = Literal["cpu", "gpu", "memory"]
METRICS: tuple[Metric, ...] = ("cpu", "gpu", "memory")


def time_label(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime(LABEL_FORMAT)


class HistorySeries:
    """Fixed-capacity rolling window of samples with a parallel label track."""

    def __init__(self, capacity: int = HISTORY_LENGTH, now: datetime | None = None):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        now = now or datetime.now()
        self.capacity = capacity
        self._values: deque[float] = deque([0.0] * capacity, maxlen=capacity)
        self._labels: deque[str] = deque(
            (time_label(now - timedelta(seconds=capacity - 1 - i)) for i in range(capacity)),
            maxlen=capacity,
        )

    @property
    def values(self) -> list[float]:
        return list(self._values)

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    @property
    def latest(self) -> float:
        return self._values[-1]

    def push(self, value: float, label: str) -> None:
        # maxlen drops index 0 as the new sample lands at the end
        self._values.append(float(value))
        self._labels.append(label)

    def points(self) -> list[tuple[str, float]]:
        return list(zip(self._labels, self._values))

    def __len__(self) -> int:
        return len(self._values)


class HistoryBuffers:
    """The three series the dashboard charts: CPU%, GPU% and memory MB."""

    def __init__(self, capacity: int = HISTORY_LENGTH, now: datetime | None = None):
        now = now or datetime.now()
        self._series: dict[str, HistorySeries] = {
            metric: HistorySeries(capacity, now=now) for metric in METRICS
        }

    def __getitem__(self, metric: Metric) -> HistorySeries:
        return self._series[metric]

    def push(self, metric: Metric, value: float, label: str) -> None:
        self._series[metric].push(value, label)

    def record(self, snapshot: SystemSnapshot, label: str | None = None) -> None:
        """Push one cycle's snapshot, always in CPU, GPU, memory order."""
        label = label or time_label()
        self.push("cpu", snapshot.cpu_usage_pct, label)
        self.push("gpu", snapshot.gpu_usage_pct, label)
        self.push("memory", snapshot.ram_used_mb, label)
