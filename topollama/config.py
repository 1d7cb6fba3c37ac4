from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ollama daemon (same variable the daemon itself reads)
    ollama_host: str = "http://localhost:11434"

    # Active-models listing
    topollama_ollama_bin: str = "ollama"
    topollama_usage_source: Literal["cli", "api"] = "cli"
    topollama_ps_timeout: float = 5.0

    # HTTP client timeouts (seconds)
    topollama_http_connect_timeout: float = 2.0
    topollama_http_read_timeout: float = 10.0

    # Logging
    topollama_log_level: str = "info"

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def ollama_base_url(self) -> str:
        """OLLAMA_HOST may be a bare host:port; always hand out a full URL."""
        host = self.ollama_host.strip().rstrip("/")
        if "://" not in host:
            host = f"http://{host}"
        return host


settings = Settings()
