from topollama.core.exceptions import (
    ActiveModelsCommandError,
    RegistryResponseError,
    RegistryUnavailableError,
    TopollamaError,
    UnsupportedTableFormatError,
)


def test_topollama_error_to_dict():
    err = TopollamaError(code="test_error", message="Something broke")
    d = err.to_dict()
    assert d["error"]["code"] == "test_error"
    assert d["error"]["message"] == "Something broke"
    assert "details" not in d["error"]


def test_topollama_error_with_details():
    err = TopollamaError(code="x", message="y", details={"hint": "try again"})
    d = err.to_dict()
    assert d["error"]["details"]["hint"] == "try again"
    assert str(err) == "y"


def test_registry_unavailable_defaults():
    err = RegistryUnavailableError()
    assert err.code == "registry_unavailable"
    assert "ollama serve" in err.details["suggestion"]
    assert err.connection_refused is False


def test_registry_unavailable_refused():
    err = RegistryUnavailableError("refused", connection_refused=True, details={"url": "http://x"})
    assert err.connection_refused is True
    assert err.details["url"] == "http://x"


def test_registry_response_error_defaults():
    err = RegistryResponseError()
    assert err.code == "registry_bad_response"
    assert err.details == {}


def test_active_models_command_error():
    err = ActiveModelsCommandError("exit 1", connection_refused=True)
    assert err.code == "active_models_command_failed"
    assert err.connection_refused is True


def test_unsupported_table_format_lists_missing_columns():
    err = UnsupportedTableFormatError(["SIZE", "PROCESSOR"])
    assert err.details["missing"] == ["SIZE", "PROCESSOR"]
    assert "SIZE, PROCESSOR" in err.message
    assert isinstance(err, TopollamaError)
