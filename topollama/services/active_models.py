"""Sources of live per-model usage (committed memory, CPU%, GPU%).

The fetcher only sees ``ActiveModelsSource.fetch_usage``; whether the data
comes from scraping ``ollama ps`` or from the daemon's /api/ps is decided at
wiring time.
"""

import asyncio
from abc import ABC, abstractmethod

import structlog

from topollama.core.exceptions import DAEMON_HINT, ActiveModelsCommandError, TopollamaError
from topollama.schemas.models import ZERO_PERCENT, ModelUsage, RunningModel
from topollama.services.formatting import format_size
from topollama.services.inference.base import RegistryBackend
from topollama.services.process_table import parse_process_table

logger = structlog.get_logger()

PS_TIMEOUT = 5.0  # seconds

_REFUSED_MARKERS = ("connection refused", "could not connect", "is it running")


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Kill a child that is still running and collect its exit status."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass  # exited between the check and the kill
    await proc.wait()


class ActiveModelsSource(ABC):
    @abstractmethod
    async def fetch_usage(self) -> dict[str, ModelUsage]:
        """Return live usage keyed by model name; empty when unavailable."""
        ...


class CommandActiveModelsSource(ActiveModelsSource):
    """Runs ``<binary> ps`` and parses its fixed-width output."""

    def __init__(self, binary: str = "ollama", timeout: float = PS_TIMEOUT):
        self.binary = binary
        self.timeout = timeout

    async def run_command(self) -> str:
        """Run the listing command once and return its stdout."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary, "ps",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ActiveModelsCommandError(f"Cannot run {self.binary}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _reap(proc)
            raise ActiveModelsCommandError(f"{self.binary} ps timed out after {self.timeout}s")
        except asyncio.CancelledError:
            await _reap(proc)
            raise

        err_text = stderr.decode(errors="replace").strip() if stderr else ""
        refused = any(marker in err_text.lower() for marker in _REFUSED_MARKERS)
        if proc.returncode != 0 or refused:
            raise ActiveModelsCommandError(
                f"{self.binary} ps exited with {proc.returncode}: {err_text}",
                connection_refused=refused,
            )
        return stdout.decode(errors="replace") if stdout else ""

    async def fetch_usage(self) -> dict[str, ModelUsage]:
        try:
            output = await self.run_command()
        except ActiveModelsCommandError as e:
            if e.connection_refused:
                logger.warning(
                    "active_models_daemon_unreachable",
                    command=f"{self.binary} ps",
                    hint=DAEMON_HINT,
                )
            else:
                logger.warning("active_models_command_failed", command=f"{self.binary} ps", reason=e.message)
            return {}
        return parse_process_table(output)


def usage_from_running(model: RunningModel) -> ModelUsage:
    """Derive the CPU/GPU split the same way ``ollama ps`` prints it."""
    if model.size_vram <= 0:
        cpu_pct, gpu_pct = "100%", ZERO_PERCENT
    elif model.size_vram >= model.size:
        cpu_pct, gpu_pct = ZERO_PERCENT, "100%"
    else:
        cpu_share = round(100 * (model.size - model.size_vram) / model.size)
        cpu_pct, gpu_pct = f"{cpu_share}%", f"{100 - cpu_share}%"
    return ModelUsage(
        committed_memory=format_size(model.size),
        cpu_percent=cpu_pct,
        gpu_percent=gpu_pct,
    )


class ApiActiveModelsSource(ActiveModelsSource):
    """Reads the daemon's structured /api/ps listing instead of scraping text."""

    def __init__(self, backend: RegistryBackend):
        self._backend = backend

    async def fetch_usage(self) -> dict[str, ModelUsage]:
        try:
            running = await self._backend.list_running()
        except TopollamaError as e:
            logger.warning("active_models_api_failed", code=e.code, reason=e.message)
            return {}
        return {model.name: usage_from_running(model) for model in running}
