import asyncio

import structlog

from topollama.core.exceptions import RegistryUnavailableError, TopollamaError
from topollama.schemas.models import (
    DIGEST_WIDTH,
    NAME_WIDTH,
    ZERO_PERCENT,
    ModelRecord,
    ModelUsage,
    RegistryModel,
)
from topollama.services.active_models import ActiveModelsSource
from topollama.services.formatting import format_size
from topollama.services.inference.base import RegistryBackend

logger = structlog.get_logger()


def merge_models(registry: list[RegistryModel], usage: dict[str, ModelUsage]) -> list[ModelRecord]:
    """Join the catalog with live usage by model name.

    Running state is decided from this cycle's usage alone.
    """
    records = []
    for model in registry:
        live = usage.get(model.name)
        records.append(ModelRecord(
            name=model.name[:NAME_WIDTH],
            digest=model.digest[:DIGEST_WIDTH],
            disk_size=model.size,
            committed_memory=live.committed_memory if live else format_size(0),
            cpu_percent=live.cpu_percent if live else ZERO_PERCENT,
            gpu_percent=live.gpu_percent if live else ZERO_PERCENT,
            is_running=live is not None,
        ))
    return records


class ModelRegistryFetcher:
    """Produces the per-cycle model list from the registry and a usage source."""

    def __init__(self, backend: RegistryBackend, usage_source: ActiveModelsSource):
        self._backend = backend
        self._usage_source = usage_source
        self.last_error: Exception | None = None

    async def fetch(self) -> list[ModelRecord]:
        # Both calls always run to completion; neither failure cancels the other.
        registry, usage = await asyncio.gather(
            self._backend.list_models(),
            self._usage_source.fetch_usage(),
            return_exceptions=True,
        )
        self.last_error = registry if isinstance(registry, Exception) else None
        for result in (registry, usage):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if isinstance(usage, Exception):
            logger.error("active_models_fetch_failed", error=f"{type(usage).__name__}: {usage}")
            usage = {}

        if isinstance(registry, RegistryUnavailableError):
            if registry.connection_refused:
                logger.warning("registry_unavailable", reason=registry.message, hint=registry.details["suggestion"])
            else:
                logger.warning("registry_unavailable", reason=registry.message)
            return []
        if isinstance(registry, TopollamaError):
            logger.warning("registry_fetch_failed", code=registry.code, reason=registry.message)
            return []
        if isinstance(registry, Exception):
            logger.error("registry_fetch_failed", error=f"{type(registry).__name__}: {registry}")
            return []

        return merge_models(registry, usage)
