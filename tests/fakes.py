# pylint: disable=missing-module-docstring,missing-function-docstring
"""Stand-ins for the terminal, the websocket, the connector and Steam, shared by the unit tests."""
import asyncio
import json
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp
import yarl
from aiohttp import WSMsgType
from multidict import CIMultiDict, CIMultiDictProxy

from remoteplay_inviter.console import StatusConsole
from remoteplay_inviter.relay.message_handler import MessageHandler, RelayWriter
from remoteplay_inviter.relay.relay_classes import ServerMessage
from remoteplay_inviter.steam.steam_controller import GuestCallback, SteamController, SteamGame

FLUSH = "<flush>"
HANG = object()


class RecordingStream:
    """Text stream that records every write and flush together with the writing thread."""

    def __init__(self):
        self.entries: List[Tuple[int, str]] = []

    def write(self, text: str) -> int:
        self.entries.append((threading.get_ident(), text))
        return len(text)

    def flush(self):
        self.entries.append((threading.get_ident(), FLUSH))

    def isatty(self) -> bool:
        return False

    def getvalue(self) -> str:
        return "".join(text for _, text in self.entries if text != FLUSH)


def make_console(ansi: bool = False) -> Tuple[StatusConsole, RecordingStream, RecordingStream]:
    stdout = RecordingStream()
    stderr = RecordingStream()
    return StatusConsole(stdout, stderr, ansi=ansi), stdout, stderr


def text_frame(payload: Any) -> aiohttp.WSMessage:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return aiohttp.WSMessage(WSMsgType.TEXT, data, None)


def ping_frame(data: bytes = b"heartbeat") -> aiohttp.WSMessage:
    return aiohttp.WSMessage(WSMsgType.PING, data, None)


def pong_frame(data: bytes = b"") -> aiohttp.WSMessage:
    return aiohttp.WSMessage(WSMsgType.PONG, data, None)


def binary_frame(data: bytes = b"\x00\x01") -> aiohttp.WSMessage:
    return aiohttp.WSMessage(WSMsgType.BINARY, data, None)


def close_frame() -> aiohttp.WSMessage:
    return aiohttp.WSMessage(WSMsgType.CLOSE, 1000, "bye")


class FakeSocket:
    """Replays scripted frames. Once the script runs out, receive() blocks like an idle connection."""

    def __init__(self, frames: Optional[List[Any]] = None):
        self._frames: List[Any] = list(frames or [])
        self.pongs: List[bytes] = []
        self.sent: List[str] = []
        self.closed: bool = False
        self.close_calls: int = 0

    @property
    def sent_json(self) -> List[Dict[str, Any]]:
        return [json.loads(data) for data in self.sent]

    async def receive(self) -> aiohttp.WSMessage:
        if not self._frames:
            await asyncio.Event().wait()
        frame = self._frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def pong(self, data: bytes = b""):
        self.pongs.append(data)

    async def send_str(self, data: str):
        self.sent.append(data)

    async def close(self) -> bool:
        self.closed = True
        self.close_calls += 1
        return True


class FakeConnector:
    """Hands out one scripted outcome per connect call: a FakeSocket, an exception to raise, or HANG."""

    def __init__(self, outcomes: List[Any]):
        self._outcomes: List[Any] = list(outcomes)
        self.urls: List[str] = []

    async def connect(self, url: str):
        self.urls.append(url)
        if not self._outcomes:
            raise AssertionError("connect called more often than scripted")
        outcome = self._outcomes.pop(0)
        if outcome is HANG:
            await asyncio.Event().wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


class ScriptedHandler(MessageHandler):
    """Returns True for commands listed in exit_on, raises for commands listed in fail_on, False otherwise."""

    def __init__(self, exit_on: Tuple[str, ...] = ("exit",), fail_on: Tuple[str, ...] = (), reply: bool = False):
        self.messages: List[ServerMessage] = []
        self._exit_on = exit_on
        self._fail_on = fail_on
        self._reply = reply

    async def handle(self, message: ServerMessage, writer: RelayWriter) -> bool:
        self.messages.append(message)
        if message.cmd in self._fail_on:
            raise RuntimeError(f"cannot handle {message.cmd}")
        if self._reply:
            await writer.send({"cmd": "ack", "of": message.cmd})
        return message.cmd in self._exit_on


def handshake_error(status: int, headers: Optional[Dict[str, str]] = None) -> aiohttp.WSServerHandshakeError:
    url = yarl.URL("wss://relay.test/ws")
    request_info = aiohttp.RequestInfo(url, "GET", CIMultiDictProxy(CIMultiDict()), url)
    return aiohttp.WSServerHandshakeError(
        request_info,
        (),
        status=status,
        message="Invalid response status",
        headers=CIMultiDictProxy(CIMultiDict(headers or {})),
    )


class FakeSteam(SteamController):

    def __init__(self, games: Optional[List[SteamGame]] = None, fail_initialize: bool = False, poll_error: Optional[Exception] = None):
        self.games: List[SteamGame] = games if games is not None else [SteamGame(1245620, "ELDEN RING"), SteamGame(413150, "Stardew Valley")]
        self.invites: List[int] = []
        self.polls: int = 0
        self.initialized: bool = False
        self.on_guest_joined: Optional[GuestCallback] = None
        self.on_guest_left: Optional[GuestCallback] = None
        self._fail_initialize = fail_initialize
        self.poll_error = poll_error
        self.polled = threading.Event()

    def initialize(self) -> None:
        if self._fail_initialize:
            raise OSError("steam_api64.dll: SteamAPI_Init failed")
        self.initialized = True

    def poll_events(self) -> None:
        self.polls += 1
        self.polled.set()
        if self.poll_error is not None:
            raise self.poll_error

    def list_games(self) -> List[SteamGame]:
        return list(self.games)

    def create_invite(self, app_id: int) -> str:
        self.invites.append(app_id)
        return f"https://s.team/remoteplay/join/{app_id}"

    def register_callbacks(self, on_guest_joined: GuestCallback, on_guest_left: GuestCallback) -> None:
        self.on_guest_joined = on_guest_joined
        self.on_guest_left = on_guest_left


class OverlapDetectingSteam(FakeSteam):
    """Counts calls that enter while another thread is still inside the controller. create_invite is slow."""

    def __init__(self, invite_delay: float = 0.3):
        super().__init__()
        self.overlaps: int = 0
        self._invite_delay = invite_delay
        self._inside: int = 0
        self._counter = threading.Lock()

    def _enter(self):
        with self._counter:
            self._inside += 1
            if self._inside > 1:
                self.overlaps += 1

    def _leave(self):
        with self._counter:
            self._inside -= 1

    def poll_events(self) -> None:
        self._enter()
        try:
            super().poll_events()
        finally:
            self._leave()

    def create_invite(self, app_id: int) -> str:
        self._enter()
        try:
            time.sleep(self._invite_delay)
            return super().create_invite(app_id)
        finally:
            self._leave()


def build_fake_steam() -> FakeSteam:
    return FakeSteam()


def build_broken_steam() -> FakeSteam:
    return FakeSteam(fail_initialize=True)


def not_a_controller() -> Callable[[], None]:
    return lambda: None
