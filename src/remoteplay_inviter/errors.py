""" errors.py

Exceptions raised by the client.

Two families:
RelayError and its children are scoped to a single connection attempt. The supervisor logs them and reconnects after the backoff delay, they never end the process.
StartupError and its children happen before the reconnect loop is entered (bad config, bad url, no Steam). They are reported once and the client goes straight to the exit prompt.

The message of each exception is what the operator sees after the "☓" marker, so keep them short and readable.
"""
from typing import Any, Mapping, Optional


class RelayError(Exception):
    """Base class for every failure that is scoped to one connection attempt."""


class ConnectTimeout(RelayError):
    def __init__(self, message: str = "Connection timed out to the server"):
        super().__init__(message)


class ReadTimeout(RelayError):
    def __init__(self, message: str = "Connection timed out"):
        super().__init__(message)


class TransportError(RelayError):
    pass


class HandshakeRejected(RelayError):
    """The server answered the websocket upgrade with a plain http response."""

    def __init__(self, status: int, headers: Optional[Mapping[str, Any]] = None):
        super().__init__(f"HTTP error: {status}")
        self.status: int = status
        self.headers: Mapping[str, Any] = headers if headers is not None else {}


class ProtocolError(RelayError):
    pass


class HandlerError(RelayError):
    pass


class StartupError(Exception):
    """Base class for failures that keep the client from entering the reconnect loop."""


class ConfigError(StartupError):
    pass


class SteamControllerError(StartupError):
    pass
