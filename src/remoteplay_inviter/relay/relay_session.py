""" relay_session.py

One connection attempt to the relay, start to finish.

CONNECTING -> CONNECTED -> READING -> CLOSED or FAILED

run() opens the socket (bounded by the connect timeout), announces the connection, and then reads frames until the server closes the socket,
the handler asks to exit, or something goes wrong. Every wait on the network is bounded, so a link that silently died surfaces as a timeout
instead of hanging the client forever.

Failures are raised as RelayError subclasses. aiohttp's own exceptions never leave this module.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import aiohttp
from aiohttp import ClientWebSocketResponse, WSMsgType

from ..backoff import BackoffPolicy
from ..console import StatusConsole
from ..errors import (ConnectTimeout, HandlerError, HandshakeRejected, ReadTimeout,
                      RelayError, TransportError)
from .message_handler import MessageHandler, RelayWriter
from .relay_classes import RelaySettings, ServerMessage, SessionState

logger = logging.getLogger(__name__)

Connect = Callable[[str], Awaitable[ClientWebSocketResponse]]

ONLINE_STATUS = "● Online. Waiting for invite requests..."

_CLOSE_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)


class ConnectionSession:
    """Owns a single websocket connection attempt.

    The session is not reused. The supervisor builds a new one for every attempt, so at most one is ever active.
    """

    def __init__(self, url: str, connect: Connect, handler: MessageHandler, backoff: BackoffPolicy, console: StatusConsole,
                 settings: RelaySettings = RelaySettings(), reconnect: bool = False):
        self._url: str = url
        self._connect: Connect = connect
        self._handler: MessageHandler = handler
        self._backoff: BackoffPolicy = backoff
        self._console: StatusConsole = console
        self._settings: RelaySettings = settings
        self._reconnect: bool = reconnect
        self._state: SessionState = SessionState.CONNECTING

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def reconnect(self) -> bool:
        return self._reconnect

    async def run(self) -> bool:
        """Run the attempt. Returns True if the handler asked the client to exit, False if the server closed the connection.

        Raises RelayError for everything else. The state is FAILED afterwards.
        """
        try:
            socket = await self._open()
        except RelayError:
            self._state = SessionState.FAILED
            raise

        try:
            self._state = SessionState.CONNECTED
            writer = RelayWriter(socket)
            self._console.print_line("✓ Reconnected!" if self._reconnect else "✓ Connected to the server!")
            self._console.set_status(ONLINE_STATUS)
            self._backoff.reset()

            self._state = SessionState.READING
            return await self._read_loop(socket, writer)
        except RelayError:
            self._state = SessionState.FAILED
            raise
        finally:
            await self._close(socket)

    async def _open(self) -> ClientWebSocketResponse:
        try:
            return await asyncio.wait_for(self._connect(self._url), self._settings.connect_timeout)
        except asyncio.TimeoutError as e:
            raise ConnectTimeout() from e
        except aiohttp.WSServerHandshakeError as e:
            raise HandshakeRejected(e.status, e.headers) from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Failed to connect to the server: {e}") from e

    async def _receive(self, socket: ClientWebSocketResponse) -> aiohttp.WSMessage:
        try:
            return await asyncio.wait_for(socket.receive(), self._settings.idle_timeout)
        except asyncio.TimeoutError as e:
            raise ReadTimeout() from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Failed to receive message from the server: {e}") from e

    async def _read_loop(self, socket: ClientWebSocketResponse, writer: RelayWriter) -> bool:
        while True:
            message = await self._receive(socket)

            if message.type in _CLOSE_TYPES:
                logger.debug("Relay closed the connection (%s, %s)", message.type.name, message.data)
                self._state = SessionState.CLOSED
                if self._settings.reset_backoff_on_close:
                    self._backoff.reset()
                return False

            elif message.type == WSMsgType.PING:
                try:
                    await socket.pong(message.data)
                except (aiohttp.ClientError, ConnectionError) as e:
                    raise TransportError("Failed to send pong message to the server") from e
                self._backoff.reset()

            elif message.type == WSMsgType.TEXT:
                server_message = ServerMessage.decode(message.data)
                logger.debug("[In] %s", server_message.cmd)
                if await self._dispatch(server_message, writer):
                    return True
                self._backoff.reset()

            elif message.type == WSMsgType.ERROR:
                cause: Optional[BaseException] = message.data if isinstance(message.data, BaseException) else None
                raise TransportError("Failed to receive message from the server") from cause

            else:
                # binary, pong and continuation frames carry nothing for us.
                logger.debug("Ignoring %s frame from the relay", message.type.name)

    async def _dispatch(self, message: ServerMessage, writer: RelayWriter) -> bool:
        try:
            return await self._handler.handle(message, writer)
        except RelayError:
            raise
        except Exception as e:
            logger.debug("Handler failed on %s", message.cmd, exc_info=True)
            raise HandlerError(f"Failed to handle '{message.cmd}' message: {e}") from e

    async def _close(self, socket: ClientWebSocketResponse):
        if socket.closed:
            return
        try:
            await socket.close()
        except (aiohttp.ClientError, OSError):
            logger.debug("Error while closing the relay socket", exc_info=True)
