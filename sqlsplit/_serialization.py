"""JSON encoding helpers backed by msgspec."""

from typing import Any

import msgspec

from sqlsplit.exceptions import SerializationError

__all__ = ("encode_json",)

_encoder = msgspec.json.Encoder()


def encode_json(data: Any) -> str:
    """Encode ``data`` as a JSON string.

    Args:
        data: Value to encode.

    Raises:
        SerializationError: If the value cannot be represented as JSON.

    Returns:
        The JSON document as text.
    """
    try:
        return _encoder.encode(data).decode("utf-8")
    except (TypeError, msgspec.EncodeError) as e:
        msg = f"Failed to encode value of type {type(data).__name__!r} as JSON"
        raise SerializationError(msg) from e
