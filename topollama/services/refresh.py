"""Refresh loop: one timer plus manual triggers feeding a single consumer."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Literal

import structlog

from topollama.schemas.models import ModelRecord
from topollama.schemas.system import SystemSnapshot
from topollama.services.formatting import format_size
from topollama.services.history import HistoryBuffers
from topollama.services.registry import ModelRegistryFetcher
from topollama.services.system import get_system_snapshot
from topollama.ui.base import ChartSeries, Display, TableRow

logger = structlog.get_logger()

REFRESH_INTERVAL = 1.0  # seconds

CycleState = Literal["idle", "fetching"]


def model_rows(models: list[ModelRecord]) -> list[TableRow]:
    return [
        TableRow(
            cells=(
                m.name,
                m.digest,
                format_size(m.disk_size),
                m.committed_memory,
                m.cpu_percent,
                m.gpu_percent,
            ),
            highlight=m.is_running,
        )
        for m in models
    ]


def history_series(history: HistoryBuffers) -> tuple[list[ChartSeries], list[ChartSeries]]:
    processor = [
        ChartSeries(title="CPU", points=history["cpu"].points(), color="cyan"),
        ChartSeries(title="GPU", points=history["gpu"].points(), color="magenta"),
    ]
    memory = [ChartSeries(title="Memory (MB)", points=history["memory"].points(), color="yellow")]
    return processor, memory


class RefreshOrchestrator:
    """Owns the model list and history buffers and redraws the display.

    Triggers go through a queue of depth one: while a cycle runs, at most one
    further request waits and any extra requests are coalesced into it.
    Cycles never overlap.
    """

    def __init__(
        self,
        fetcher: ModelRegistryFetcher,
        display: Display,
        history: HistoryBuffers | None = None,
        interval: float = REFRESH_INTERVAL,
        snapshot: Callable[[list[ModelRecord]], Awaitable[SystemSnapshot]] = get_system_snapshot,
    ):
        self._fetcher = fetcher
        self._display = display
        self._history = history or HistoryBuffers()
        self._interval = interval
        self._snapshot = snapshot
        self._pending: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        self._lock = asyncio.Lock()
        self._models: list[ModelRecord] = []
        self._state: CycleState = "idle"
        self._tasks: list[asyncio.Task] = []
        self._running = False
        self.cycles_completed = 0

    @property
    def models(self) -> list[ModelRecord]:
        return list(self._models)

    @property
    def history(self) -> HistoryBuffers:
        return self._history

    @property
    def state(self) -> CycleState:
        return self._state

    def request_refresh(self, reason: str = "manual") -> bool:
        """Queue a cycle. Returns False when one is already pending."""
        try:
            self._pending.put_nowait(reason)
        except asyncio.QueueFull:
            logger.debug("refresh_coalesced", reason=reason)
            return False
        return True

    async def start(self) -> None:
        """Start the consumer and the interval timer."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._consume()),
            asyncio.create_task(self._tick()),
        ]
        logger.info("refresh_loop_started", interval=self._interval)

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("refresh_loop_stopped", cycles=self.cycles_completed)

    async def _tick(self) -> None:
        while self._running:
            self.request_refresh("timer")
            await asyncio.sleep(self._interval)

    async def _consume(self) -> None:
        while self._running:
            reason = await self._pending.get()
            await self.run_cycle(reason)

    async def run_cycle(self, reason: str = "manual") -> None:
        """Fetch, record history, hand rows and series to the display, redraw."""
        async with self._lock:
            self._state = "fetching"
            try:
                try:
                    models = await self._fetcher.fetch()
                    self._models = models
                    snapshot = await self._snapshot(models)
                    self._history.record(snapshot)
                    self._display.show_models(model_rows(models))
                    processor, memory = history_series(self._history)
                    self._display.show_history(processor, memory)
                except Exception:
                    logger.exception("refresh_cycle_failed", reason=reason)

                try:
                    self._display.render()
                except Exception:
                    logger.exception("render_failed", reason=reason)
                self.cycles_completed += 1
            finally:
                self._state = "idle"
