import pytest

from sqlsplit._serialization import encode_json
from sqlsplit.exceptions import (
    ImproperConfigurationError,
    MissingDependencyError,
    SerializationError,
    SQLSplitError,
    StreamClosedError,
)


def test_exception_hierarchy():
    """Test exception classes inherit correctly."""
    assert issubclass(ImproperConfigurationError, SQLSplitError)
    assert issubclass(SerializationError, SQLSplitError)
    assert issubclass(StreamClosedError, SQLSplitError)
    assert issubclass(MissingDependencyError, SQLSplitError)
    assert issubclass(MissingDependencyError, ImportError)


def test_exception_message_and_repr():
    """Test the message becomes the detail."""
    exc = ImproperConfigurationError("Unknown splitter option(s): foo")
    assert str(exc) == "Unknown splitter option(s): foo"
    assert repr(exc) == "ImproperConfigurationError - Unknown splitter option(s): foo"
    assert repr(SQLSplitError()) == "SQLSplitError"


def test_detail_keyword():
    exc = SQLSplitError("context", detail="what went wrong")
    assert exc.detail == "what went wrong"
    assert str(exc) == "context what went wrong"


def test_stream_closed_default_message():
    assert str(StreamClosedError()) == "Cannot feed a statement stream after close()."
    assert str(StreamClosedError("closed")) == "closed"


def test_missing_dependency_message():
    exc = MissingDependencyError(package="click", install_package="cli")
    assert "'click' is not installed" in str(exc)
    assert "pip install sqlsplit[cli]" in str(exc)


def test_encode_json_failure_is_wrapped():
    """Test unsupported values raise SerializationError chained to the encoder error."""
    with pytest.raises(SerializationError, match="object") as exc_info:
        encode_json(object())
    assert exc_info.value.__cause__ is not None


def test_encode_json():
    assert encode_json({"statements": ["SELECT 1"], "count": 1}) == '{"statements":["SELECT 1"],"count":1}'
