from abc import ABC, abstractmethod

from topollama.schemas.models import RegistryModel, RunningModel


class RegistryBackend(ABC):
    @abstractmethod
    async def list_models(self) -> list[RegistryModel]:
        """List every model known to the daemon (name, digest, size)."""
        ...

    @abstractmethod
    async def list_running(self) -> list[RunningModel]:
        """List currently loaded models with their memory placement."""
        ...
