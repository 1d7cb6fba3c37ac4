import httpx
import structlog

from topollama.core.exceptions import RegistryResponseError, RegistryUnavailableError
from topollama.schemas.models import RegistryModel, RunningModel
from topollama.services.inference.base import RegistryBackend

logger = structlog.get_logger()


class OllamaClient(RegistryBackend):
    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        connect_timeout: float = 2.0,
        read_timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=connect_timeout, read=read_timeout, write=5.0, pool=5.0)
        )

    async def _get_json(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.ConnectError as e:
            raise RegistryUnavailableError(
                f"Cannot connect to Ollama at {self.base_url}: {e}",
                connection_refused=True,
            )
        except httpx.TimeoutException:
            raise RegistryUnavailableError(
                f"Ollama at {self.base_url} timed out.",
                details={"suggestion": "The daemon may be busy loading a model. Try again shortly."},
            )
        except httpx.TransportError as e:
            raise RegistryUnavailableError(f"Transport error talking to Ollama at {self.base_url}: {e}")
        except httpx.HTTPStatusError as e:
            raise RegistryResponseError(f"Ollama returned error: {e.response.status_code}")
        except ValueError as e:
            raise RegistryResponseError(f"Ollama returned invalid JSON: {e}")

    async def list_models(self) -> list[RegistryModel]:
        """List the model catalog from /api/tags."""
        data = await self._get_json("/api/tags")
        return self._parse_tags(data)

    async def list_running(self) -> list[RunningModel]:
        """List loaded models from /api/ps."""
        data = await self._get_json("/api/ps")
        return self._parse_ps(data)

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ── Ollama response parsers ──────────────────────────────────────────────

    def _parse_tags(self, data: dict) -> list[RegistryModel]:
        if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
            raise RegistryResponseError("Ollama /api/tags payload has no model list.")
        models = []
        for m in data.get("models") or []:
            name = m.get("name") or m.get("model")
            if not name:
                logger.debug("registry_entry_without_name", entry=m)
                continue
            models.append(RegistryModel(
                name=name,
                digest=m.get("digest") or "",
                size=int(m.get("size") or 0),
            ))
        return models

    def _parse_ps(self, data: dict) -> list[RunningModel]:
        if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
            raise RegistryResponseError("Ollama /api/ps payload has no model list.")
        return [
            RunningModel(
                name=m.get("name") or m.get("model", ""),
                size=int(m.get("size") or 0),
                size_vram=int(m.get("size_vram") or 0),
            )
            for m in data.get("models") or []
        ]
