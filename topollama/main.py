import asyncio
import signal

import structlog

from topollama.config import Settings, settings
from topollama.core.logging import DiagnosticBus, configure_logging
from topollama.services.active_models import (
    ActiveModelsSource,
    ApiActiveModelsSource,
    CommandActiveModelsSource,
)
from topollama.services.inference.ollama_client import OllamaClient
from topollama.services.refresh import RefreshOrchestrator
from topollama.services.registry import ModelRegistryFetcher
from topollama.ui.dashboard import Dashboard
from topollama.ui.keyboard import KeyboardInput

logger = structlog.get_logger()


def build_client(config: Settings) -> OllamaClient:
    return OllamaClient(
        base_url=config.ollama_base_url,
        connect_timeout=config.topollama_http_connect_timeout,
        read_timeout=config.topollama_http_read_timeout,
    )


def build_usage_source(config: Settings, client: OllamaClient) -> ActiveModelsSource:
    if config.topollama_usage_source == "api":
        return ApiActiveModelsSource(client)
    return CommandActiveModelsSource(
        binary=config.topollama_ollama_bin,
        timeout=config.topollama_ps_timeout,
    )


def build_fetcher(config: Settings, client: OllamaClient) -> ModelRegistryFetcher:
    return ModelRegistryFetcher(client, build_usage_source(config, client))


async def run_dashboard(config: Settings = settings) -> None:
    """Run the live dashboard until the user quits."""
    bus = DiagnosticBus()
    configure_logging(config.topollama_log_level, sink=bus)

    client = build_client(config)
    fetcher = build_fetcher(config, client)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    with Dashboard() as dashboard:
        bus.subscribe(dashboard.log)
        orchestrator = RefreshOrchestrator(fetcher, dashboard)

        def _refresh() -> None:
            logger.info("refresh_requested")
            orchestrator.request_refresh("manual")

        keyboard = KeyboardInput(on_quit=stop.set, on_refresh=_refresh)
        keyboard.start(loop)
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        logger.info("topollama_started", host=config.ollama_base_url, hint="Press q to quit, r to refresh.")
        await orchestrator.start()
        try:
            await stop.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await orchestrator.stop()
            keyboard.stop()
            bus.unsubscribe(dashboard.log)
            await client.close()
