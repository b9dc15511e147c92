""" invite_handler.py

The default MessageHandler. Turns relay commands into Steam calls and answers with the result.

Commands, tagged by "cmd":
    games    {"user": <discord user>}                    -> {"cmd": "games", "user": ..., "games": [{"app_id": ..., "name": ...}, ...]}
    link     {"user": <discord user>, "game": <app id>}  -> {"cmd": "link", "user": ..., "game": ..., "link": "<invite link>"}
    message  {"message": "<text>"}                       -> printed for the operator, no answer
    exit     {}                                          -> the client exits

Unknown commands are logged and skipped, so an older client keeps working when the relay learns something new.
Steam calls block, they run in the default executor so the relay keeps answering pings meanwhile. They hold the controller lock, so
they never overlap with the callback poller.
"""
import asyncio
import logging
from typing import Any, Dict

from ..console import StatusConsole
from ..errors import ProtocolError
from ..relay.message_handler import MessageHandler, RelayWriter
from ..relay.relay_classes import ServerMessage
from ..relay.relay_session import ONLINE_STATUS
from .steam_controller import GuestEvent, SteamController, call_locked

logger = logging.getLogger(__name__)


class InviteMessageHandler(MessageHandler):

    def __init__(self, steam: SteamController, console: StatusConsole):
        self._steam: SteamController = steam
        self._console: StatusConsole = console
        self._guests: Dict[int, GuestEvent] = {}

    @property
    def guest_count(self) -> int:
        return len(self._guests)

    def setup_steam_callbacks(self):
        self._steam.register_callbacks(self._on_guest_joined, self._on_guest_left)

    # steam callbacks. these run on the poller thread.
    def _on_guest_joined(self, event: GuestEvent):
        self._guests[event.guest_id] = event
        self._console.print_line(f"→ {event.guest_name or event.guest_id} joined the Remote Play session ({event.app_id})")
        self._console.set_status(f"▶ Remote Play: {len(self._guests)} guest(s) connected")

    def _on_guest_left(self, event: GuestEvent):
        self._guests.pop(event.guest_id, None)
        self._console.print_line(f"← {event.guest_name or event.guest_id} left the Remote Play session ({event.app_id})")
        if self._guests:
            self._console.set_status(f"▶ Remote Play: {len(self._guests)} guest(s) connected")
        else:
            self._console.set_status(ONLINE_STATUS)

    async def handle(self, message: ServerMessage, writer: RelayWriter) -> bool:
        if message.cmd == "exit":
            self._console.print_line("□ The server asked the client to exit.")
            return True
        elif message.cmd == "message":
            self._show_server_message(_require(message, "message", str))
        elif message.cmd == "games":
            await self._send_games(message, writer)
        elif message.cmd == "link":
            await self._send_link(message, writer)
        else:
            logger.warning("Ignoring unknown command from the relay: %s", message.cmd)
        return False

    def _show_server_message(self, text: str):
        indented = "\n".join(f"  {line}" for line in text.splitlines())
        self._console.print_block("✉ Message from the server:\n" + indented)

    async def _send_games(self, message: ServerMessage, writer: RelayWriter):
        user = _require(message, "user", (int, str))
        loop = asyncio.get_running_loop()
        games = await loop.run_in_executor(None, call_locked, self._steam, self._steam.list_games)
        logger.info("Sending %d games to the relay", len(games))
        await writer.send({
            "cmd": "games",
            "user": user,
            "games": [{"app_id": game.app_id, "name": game.name} for game in games],
        })

    async def _send_link(self, message: ServerMessage, writer: RelayWriter):
        user = _require(message, "user", (int, str))
        app_id = _require(message, "game", int)
        loop = asyncio.get_running_loop()
        link = await loop.run_in_executor(None, call_locked, self._steam, self._steam.create_invite, app_id)
        self._console.print_line(f"✓ Created an invite link for game {app_id}")
        await writer.send({"cmd": "link", "user": user, "game": app_id, "link": link})


def _require(message: ServerMessage, key: str, expected_type: Any) -> Any:
    value = message.payload.get(key)
    # bool is an int subclass, and never a valid id.
    if value is None or isinstance(value, bool) or not isinstance(value, expected_type):
        raise ProtocolError(f"Invalid '{message.cmd}' message from the server: missing or invalid '{key}'")
    return value
