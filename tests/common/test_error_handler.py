import pytest

from traitlab.common.exceptions import (
    ConfigurationError,
    DataTransformError,
    FileReadError,
    ProcessError,
)
from traitlab.common.utils import error_handler, format_error_message, get_error_details


def test_value_error_becomes_process_error():
    @error_handler(log=False, console_output=False)
    def failing():
        raise ValueError("bad value")

    with pytest.raises(ProcessError) as exc_info:
        failing()
    assert exc_info.value.details["original_error"] == "bad value"


def test_traitlab_errors_pass_through():
    @error_handler(log=False, console_output=False)
    def failing():
        raise DataTransformError("bad step")

    with pytest.raises(DataTransformError):
        failing()


def test_swallowed_error_returns_none():
    @error_handler(log=False, raise_error=False, console_output=False)
    def failing():
        raise OSError("disk full")

    assert failing() is None


def test_other_exceptions_are_not_caught():
    @error_handler(log=False, console_output=False)
    def failing():
        raise KeyError("x")

    with pytest.raises(KeyError):
        failing()


def test_error_logged_once(caplog):
    @error_handler(log=True, console_output=False)
    def inner():
        raise DataTransformError("bad step")

    @error_handler(log=True, console_output=False)
    def outer():
        inner()

    with pytest.raises(DataTransformError):
        outer()
    assert sum("bad step" in r.getMessage() for r in caplog.records) == 1


def test_format_error_message():
    assert (
        format_error_message(ConfigurationError("outputs.path", "not set"))
        == "Configuration error (outputs.path): not set"
    )
    assert format_error_message(FileReadError("a.csv", "missing")) == (
        "File error on a.csv: missing"
    )
    assert format_error_message(KeyError("k")) == "Error (KeyError): 'k'"


def test_get_error_details():
    details = get_error_details(ConfigurationError("data", "bad", {"file": "config.yml"}))
    assert details["error_type"] == "ConfigurationError"
    assert details["config_key"] == "data"
    assert details["file"] == "config.yml"
