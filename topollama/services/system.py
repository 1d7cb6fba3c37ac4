import asyncio
from collections.abc import Callable

import psutil
import structlog

from topollama.schemas.models import NOT_APPLICABLE, ModelRecord
from topollama.schemas.system import SystemSnapshot

logger = structlog.get_logger()

CPU_SAMPLE_DELAY = 0.1  # seconds between the two tick snapshots

CoreTimes = list[tuple[float, float]]  # per core: (idle, total)


def _total_ticks(times) -> float:
    # Linux already folds guest time into user and nice
    guest = getattr(times, "guest", 0) + getattr(times, "guest_nice", 0)
    return float(sum(times) - guest)


def read_core_times() -> CoreTimes:
    """Per-core (idle, total) tick counters from psutil."""
    return [(t.idle, _total_ticks(t)) for t in psutil.cpu_times(percpu=True)]


def read_memory_used_mb() -> int:
    mem = psutil.virtual_memory()
    return int(round((mem.total - mem.available) / (1024 * 1024)))


def cpu_percent_between(start: CoreTimes, end: CoreTimes) -> float:
    """Aggregate utilization from two snapshots, averaged across cores.

    A core whose total did not advance contributes an idle fraction of 0.
    """
    fractions = []
    for (idle_a, total_a), (idle_b, total_b) in zip(start, end):
        total_delta = total_b - total_a
        fractions.append((idle_b - idle_a) / total_delta if total_delta else 0.0)
    if not fractions:
        return 0.0
    return round((1 - sum(fractions) / len(fractions)) * 100, 1)


async def sample_cpu_percent(
    core_times: Callable[[], CoreTimes] = read_core_times,
    delay: float = CPU_SAMPLE_DELAY,
) -> float:
    start = core_times()
    await asyncio.sleep(delay)
    end = core_times()
    return cpu_percent_between(start, end)


def _parse_percent(value: str) -> float | None:
    if not value or value == NOT_APPLICABLE:
        return None
    try:
        return float(value.strip().rstrip("%"))
    except ValueError:
        return None


def gpu_aggregate(models: list[ModelRecord]) -> float:
    """Mean GPU% over running models that report a non-zero GPU share, else 0."""
    readings = []
    for model in models:
        if not model.is_running:
            continue
        pct = _parse_percent(model.gpu_percent)
        if pct:
            readings.append(pct)
    if not readings:
        return 0.0
    return round(sum(readings) / len(readings), 1)


async def _safe_cpu_percent() -> float:
    try:
        return await sample_cpu_percent()
    except Exception as e:
        logger.warning("cpu_metrics_unavailable", reason=str(e))
        return 0.0


async def _safe_memory_used_mb() -> int:
    try:
        return read_memory_used_mb()
    except Exception as e:
        logger.warning("memory_metrics_unavailable", reason=str(e))
        return 0


async def get_system_snapshot(models: list[ModelRecord]) -> SystemSnapshot:
    """Collect whole-machine CPU and memory plus the per-model GPU aggregate.

    Each metric degrades to 0 on its own if its source is unavailable.
    """
    cpu_pct, ram_used_mb = await asyncio.gather(
        _safe_cpu_percent(),
        _safe_memory_used_mb(),
    )
    return SystemSnapshot(
        cpu_usage_pct=cpu_pct,
        gpu_usage_pct=gpu_aggregate(models),
        ram_used_mb=ram_used_mb,
    )
