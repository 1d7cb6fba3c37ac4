from pydantic import BaseModel


class SystemSnapshot(BaseModel):
    cpu_usage_pct: float = 0.0
    gpu_usage_pct: float = 0.0
    ram_used_mb: int = 0
