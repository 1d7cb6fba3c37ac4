from pydantic import BaseModel

NAME_WIDTH = 28
DIGEST_WIDTH = 12

NOT_APPLICABLE = "N/A"
ZERO_PERCENT = "0%"


class RegistryModel(BaseModel):
    """One entry of the daemon's model catalog (/api/tags)."""

    name: str
    digest: str = ""
    size: int = 0


class ModelUsage(BaseModel):
    """Live usage of a loaded model, as reported by an active-models source."""

    committed_memory: str
    cpu_percent: str = ZERO_PERCENT
    gpu_percent: str = ZERO_PERCENT


class ModelRecord(BaseModel):
    name: str
    digest: str
    disk_size: int
    committed_memory: str
    cpu_percent: str = ZERO_PERCENT
    gpu_percent: str = ZERO_PERCENT
    is_running: bool = False


class RunningModel(BaseModel):
    """One loaded model as reported by the daemon's /api/ps."""

    name: str
    size: int = 0
    size_vram: int = 0
