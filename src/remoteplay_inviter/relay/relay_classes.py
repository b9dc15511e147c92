""" relay_classes.py

Small data classes shared by the relay session, the error classifier and the message handlers.
Kept in their own module so the session and the handlers can both import them without importing each other.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Union

from ..errors import ProtocolError, RelayError

ERROR_HEADER = "X-Error"
OUTDATED_ERROR_TYPE = "Outdated"


class SessionState(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READING = "reading"
    CLOSED = "closed"
    FAILED = "failed"


class ServerMessage(NamedTuple):
    """A decoded text frame. The session only checks the envelope, the payload is the handler's business."""
    cmd: str
    payload: Dict[str, Any]

    @staticmethod
    def decode(text: Union[str, bytes]) -> ServerMessage:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ProtocolError(f"Failed to parse message from the server: {e}") from e

        if not isinstance(data, dict):
            raise ProtocolError(f"Unexpected message from the server: expected a JSON object, got {type(data).__name__}")
        cmd = data.get("cmd")
        if not isinstance(cmd, str):
            raise ProtocolError("Unexpected message from the server: missing command")

        payload = {key: value for key, value in data.items() if key != "cmd"}
        return ServerMessage(cmd, payload)


class OutdatedError(NamedTuple):
    required: str
    download: str


class OtherError(NamedTuple):
    type: str


ConnectionErrorType = Union[OutdatedError, OtherError]


class ConnectionErrorPayload(NamedTuple):
    """The structured body of a rejected handshake, carried in the X-Error header."""
    message: Optional[str]
    error: ConnectionErrorType

    @staticmethod
    def from_dict(data: Any) -> ConnectionErrorPayload:
        """Raises ValueError when the shape does not match."""
        if not isinstance(data, dict):
            raise ValueError("error payload is not an object")

        message = data.get("message")
        if message is not None and not isinstance(message, str):
            raise ValueError("error message is not a string")

        error = data.get("error")
        if not isinstance(error, dict) or not isinstance(error.get("type"), str):
            raise ValueError("error payload has no error type")

        if error["type"] == OUTDATED_ERROR_TYPE:
            required = error.get("required")
            download = error.get("download")
            if not isinstance(required, str) or not isinstance(download, str):
                raise ValueError("outdated error is missing the required version or download url")
            return ConnectionErrorPayload(message, OutdatedError(required, download))

        return ConnectionErrorPayload(message, OtherError(error["type"]))


class ClassifiedError(NamedTuple):
    """What the supervisor should do with a failed attempt.

    error is printed when present. It is None when the classifier already rendered everything the operator needs to see.
    terminal stops the reconnect loop.
    """
    error: Optional[RelayError]
    terminal: bool = False


class RelaySettings(NamedTuple):
    connect_timeout: float = 10.0
    idle_timeout: float = 60.0
    backoff_initial: int = 1
    backoff_max: int = 60
    reset_backoff_on_close: bool = False
    stop_on_rejection: bool = False
