import httpx
import pytest

from topollama.core.exceptions import RegistryResponseError, RegistryUnavailableError
from topollama.services.inference.base import RegistryBackend
from topollama.services.inference.ollama_client import OllamaClient


def _client_with(handler) -> OllamaClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://mock")
    return OllamaClient(base_url="http://mock", http_client=http_client)


async def test_list_models(ollama_client: OllamaClient):
    """Registry listing returns name, digest and size for every installed model."""
    models = await ollama_client.list_models()
    assert [m.name for m in models] == [
        "qwen2.5-32b-instruct-q4_K_M-long-name:latest",
        "nomic-embed-text:latest",
        "llama3:latest",
    ]
    llama = models[2]
    assert llama.size == 4661224676
    assert llama.digest.startswith("365c0bd3c000")


async def test_list_running(ollama_client: OllamaClient):
    running = await ollama_client.list_running()
    assert {m.name for m in running} == {
        "qwen2.5-32b-instruct-q4_K_M-long-name:latest",
        "llama3:latest",
    }
    assert all(m.size_vram > 0 for m in running)


async def test_connection_error_is_registry_unavailable():
    """Connection refused surfaces as RegistryUnavailableError with a hint."""
    client = OllamaClient(base_url="http://localhost:19999")
    with pytest.raises(RegistryUnavailableError) as exc:
        await client.list_models()
    assert exc.value.connection_refused is True
    assert "ollama serve" in exc.value.details["suggestion"]
    await client.close()


async def test_http_error_is_bad_response():
    client = _client_with(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(RegistryResponseError) as exc:
        await client.list_models()
    assert "500" in exc.value.message
    await client.close()


async def test_invalid_json_is_bad_response():
    client = _client_with(lambda request: httpx.Response(200, text="<html>not json</html>"))
    with pytest.raises(RegistryResponseError):
        await client.list_models()
    await client.close()


async def test_payload_without_model_list_is_bad_response():
    client = _client_with(lambda request: httpx.Response(200, json={"models": "nope"}))
    with pytest.raises(RegistryResponseError):
        await client.list_models()
    await client.close()


async def test_entries_without_name_are_skipped():
    payload = {"models": [{"digest": "aaa", "size": 1}, {"name": "ok:latest", "digest": "bbb", "size": 2}]}
    client = _client_with(lambda request: httpx.Response(200, json=payload))
    models = await client.list_models()
    assert [m.name for m in models] == ["ok:latest"]
    await client.close()


async def test_timeout_is_registry_unavailable():
    def _raise(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = _client_with(_raise)
    with pytest.raises(RegistryUnavailableError) as exc:
        await client.list_models()
    assert exc.value.connection_refused is False
    await client.close()


def test_backend_contract_is_the_two_listings():
    """The fetcher and the /api/ps source need nothing beyond the two listings."""
    assert RegistryBackend.__abstractmethods__ == {"list_models", "list_running"}
