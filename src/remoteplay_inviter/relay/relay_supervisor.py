""" relay_supervisor.py

The outermost relay loop.

The relay url is resolved once, when the client starts. After that the supervisor runs one ConnectionSession after another until a handler asks the client to exit.
A session that fails, or that the server closes, is followed by a pause from the backoff policy and a fresh session. Nothing that happens inside an attempt ends the loop,
with the single opt-in exception of a structured handshake rejection when stop_on_rejection is set.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from ..backoff import BackoffPolicy
from ..config import ConfigStore
from ..console import StatusConsole
from ..errors import RelayError
from .message_handler import MessageHandler
from .relay_classes import RelaySettings
from .relay_connector import build_relay_url
from .relay_session import Connect, ConnectionSession
from .ws_error_handler import ConnectionErrorClassifier

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def new_session_id() -> int:
    return random.getrandbits(32)


def resolve_relay_url(config_store: ConfigStore, default_endpoint: str, console: StatusConsole, version: str,
                      session_id: Optional[int] = None) -> str:
    """Build the url every attempt of this process connects to.

    Raises StartupError (or its ConfigError child) when the config cannot be read or the url cannot be built. Both are fatal.
    """
    endpoint_override = config_store.read_endpoint_override()
    client_id = config_store.read_or_create_client_id()
    if session_id is None:
        session_id = new_session_id()

    if endpoint_override is not None:
        console.print_line(f"✓ Using custom endpoint URL: {endpoint_override}")
        endpoint = endpoint_override
    else:
        endpoint = default_endpoint

    return build_relay_url(endpoint, version, client_id, session_id)


class SessionSupervisor:

    def __init__(self, url: str, connect: Connect, handler: MessageHandler, console: StatusConsole, classifier: ConnectionErrorClassifier,
                 settings: RelaySettings = RelaySettings(), backoff: Optional[BackoffPolicy] = None, sleep: Sleep = asyncio.sleep):
        self._url: str = url
        self._connect: Connect = connect
        self._handler: MessageHandler = handler
        self._console: StatusConsole = console
        self._classifier: ConnectionErrorClassifier = classifier
        self._settings: RelaySettings = settings
        self._backoff: BackoffPolicy = backoff if backoff is not None else BackoffPolicy(settings.backoff_initial, settings.backoff_max)
        self._sleep: Sleep = sleep
        self._attempts: int = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    async def run(self):
        """Run sessions until a handler asks to exit. Cancelling the task is the only other way out."""
        reconnect = False

        while True:
            if reconnect:
                self._console.print_line("↪ Reconnecting to the server...")

            self._attempts += 1
            session = ConnectionSession(self._url, self._connect, self._handler, self._backoff, self._console, self._settings, reconnect)
            try:
                if await session.run():
                    logger.info("Exit requested by the server after %d attempt(s)", self._attempts)
                    return
            except RelayError as e:
                classified = self._classifier.classify(e)
                if classified.error is not None:
                    self._console.print_error(f"☓ {classified.error}")
                if classified.terminal:
                    logger.info("Handshake rejection is terminal, not reconnecting")
                    return

            delay = self._backoff.next()
            self._console.print_line(f"↪ Connection lost. Reconnecting in {delay} seconds...")
            self._console.set_status(f"○ Offline. Reconnecting in {delay} seconds...")
            await self._sleep(delay)
            reconnect = True
