class TopollamaError(Exception):
    """Base exception for topollama errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


DAEMON_HINT = "Is the Ollama daemon running? Start it with `ollama serve`."


class RegistryUnavailableError(TopollamaError):
    def __init__(
        self,
        message: str = "Ollama daemon is unavailable.",
        connection_refused: bool = False,
        details: dict | None = None,
    ):
        super().__init__(
            code="registry_unavailable",
            message=message,
            details={"suggestion": DAEMON_HINT, "connection_refused": connection_refused, **(details or {})},
        )

    @property
    def connection_refused(self) -> bool:
        return bool(self.details.get("connection_refused"))


class RegistryResponseError(TopollamaError):
    def __init__(self, message: str = "Ollama returned an unexpected response.", details: dict | None = None):
        super().__init__(code="registry_bad_response", message=message, details=details)


class ActiveModelsCommandError(TopollamaError):
    def __init__(
        self,
        message: str = "Active models command failed.",
        connection_refused: bool = False,
        details: dict | None = None,
    ):
        super().__init__(
            code="active_models_command_failed",
            message=message,
            details={"connection_refused": connection_refused, **(details or {})},
        )

    @property
    def connection_refused(self) -> bool:
        return bool(self.details.get("connection_refused"))


class UnsupportedTableFormatError(TopollamaError):
    def __init__(self, missing: list[str], details: dict | None = None):
        super().__init__(
            code="unsupported_table_format",
            message=f"Process table header is missing columns: {', '.join(missing)}",
            details={"missing": missing, **(details or {})},
        )
