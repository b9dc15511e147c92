""" message_handler.py

The seam between the relay session and whatever reacts to server messages.

The session decodes the JSON envelope of each text frame and hands the result to a MessageHandler, together with a RelayWriter so the handler can answer.
Messages are handed over one at a time, in the order they arrived. The next frame is not read until the handler returns.

A handler returns False to keep going, True to ask the whole client to exit. Anything it raises ends the current connection attempt, and the supervisor
reconnects after the usual backoff delay.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

import aiohttp
from aiohttp import ClientWebSocketResponse

from ..errors import TransportError
from .relay_classes import ServerMessage

logger = logging.getLogger(__name__)
LOG_SENSITIVE_DATA = False


class RelayWriter:
    """The write half of a relay connection. Only ever sends text frames."""

    def __init__(self, socket: ClientWebSocketResponse):
        self._socket = socket

    @property
    def closed(self) -> bool:
        return self._socket.closed

    async def send(self, payload: Mapping[str, Any]):
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        if LOG_SENSITIVE_DATA:
            logger.debug("[Out] %s", data)
        else:
            logger.debug("[Out] %s (%dB)", payload.get("cmd"), len(data))
        try:
            await self._socket.send_str(data)
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError("Failed to send message to the server") from e


class MessageHandler(ABC):

    @abstractmethod
    async def handle(self, message: ServerMessage, writer: RelayWriter) -> bool:
        """React to one server message. Return True to request that the client exits."""
        pass
