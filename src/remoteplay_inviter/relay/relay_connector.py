""" relay_connector.py

Builds the relay url and opens websocket connections to it.

The connector owns the aiohttp client session and the TLS context. It is created once and used for every attempt, the session itself is opened lazily
because aiohttp wants a running event loop for that.
Pings are not answered automatically (autoping is off): the relay session answers them itself, since a ping is also our signal that the link is healthy.
"""
import logging
import ssl
from typing import Optional

import aiohttp
import certifi
import yarl
from aiohttp import ClientWebSocketResponse

from ..errors import StartupError

logger = logging.getLogger(__name__)

RELAY_PATH = "/ws"
MAX_INCOMING_MESSAGE_SIZE = 2**24
SUPPORTED_SCHEMES = ("ws", "wss", "http", "https")


def build_relay_url(endpoint: str, version: str, client_id: str, session_id: int) -> str:
    """<endpoint>/ws?v=<version>&token=<client id>&session=<session id>

    Any path or query already on the endpoint is replaced. Raises StartupError if the endpoint is not an absolute websocket or http url.
    """
    try:
        url = yarl.URL(endpoint)
    except (TypeError, ValueError) as e:
        raise StartupError(f"Failed to parse URL: {endpoint}") from e

    if not url.is_absolute() or url.scheme not in SUPPORTED_SCHEMES or not url.host:
        raise StartupError(f"Failed to parse URL: {endpoint}")

    try:
        url = url.with_path(RELAY_PATH).with_query({"v": version, "token": client_id, "session": str(session_id)})
    except (TypeError, ValueError) as e:
        raise StartupError(f"Failed to build URL: {endpoint}") from e
    return str(url)


def create_ssl_context() -> ssl.SSLContext:
    ssl_context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ssl_context.load_verify_locations(certifi.where())
    return ssl_context


class RelayConnector:
    """Opens websocket connections to the relay with the client's transport options."""

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None, max_message_size: int = MAX_INCOMING_MESSAGE_SIZE):
        self._ssl_context: ssl.SSLContext = ssl_context if ssl_context is not None else create_ssl_context()
        self._max_message_size: int = max_message_size
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self, url: str) -> ClientWebSocketResponse:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        logger.debug("Opening websocket to %s", yarl.URL(url).with_query(None))
        return await self._session.ws_connect(
            url,
            autoping=False,
            autoclose=True,
            ssl=self._ssl_context,
            max_msg_size=self._max_message_size,
        )

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None
