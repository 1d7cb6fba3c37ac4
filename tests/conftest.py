import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient

from topollama.services.inference.ollama_client import OllamaClient


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep logging configuration from leaking between tests."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest_asyncio.fixture
async def ollama_client():
    """OllamaClient wired to the fake daemon via in-process ASGITransport."""
    from tests.mocks.fake_ollama import app as fake_ollama_app

    transport = ASGITransport(app=fake_ollama_app)
    http_client = AsyncClient(transport=transport, base_url="http://fake-ollama")
    client = OllamaClient(base_url="http://fake-ollama", http_client=http_client)
    yield client
    await http_client.aclose()
