# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from fakes import FakeSocket, FakeSteam, make_console
from remoteplay_inviter.errors import ProtocolError
from remoteplay_inviter.relay.message_handler import RelayWriter
from remoteplay_inviter.relay.relay_classes import ServerMessage
from remoteplay_inviter.relay.relay_session import ONLINE_STATUS
from remoteplay_inviter.steam.invite_handler import InviteMessageHandler
from remoteplay_inviter.steam.steam_controller import GuestEvent, SteamGame


def make_handler(steam=None):
    console, stdout, stderr = make_console()
    steam = steam or FakeSteam()
    socket = FakeSocket()
    return InviteMessageHandler(steam, console), steam, socket, RelayWriter(socket), stdout


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_games_lists_installed_games():
    steam = FakeSteam(games=[SteamGame(413150, "Stardew Valley")])
    handler, _, socket, writer, _ = make_handler(steam)

    assert await handler.handle(ServerMessage("games", {"user": "123456789"}), writer) is False

    assert socket.sent_json == [{
        "cmd": "games",
        "user": "123456789",
        "games": [{"app_id": 413150, "name": "Stardew Valley"}],
    }]


@pytest.mark.asyncio
async def test_link_creates_invite():
    handler, steam, socket, writer, stdout = make_handler()

    assert await handler.handle(ServerMessage("link", {"user": 42, "game": 413150}), writer) is False

    assert steam.invites == [413150]
    assert socket.sent_json == [{"cmd": "link", "user": 42, "game": 413150, "link": "https://s.team/remoteplay/join/413150"}]
    assert "✓ Created an invite link for game 413150" in stdout.getvalue()


@pytest.mark.parametrize("payload", [{"user": 42}, {"user": 42, "game": "413150"}, {"game": 413150}, {"user": True, "game": 1}])
@pytest.mark.asyncio
async def test_link_with_invalid_payload_is_protocol_error(payload):
    handler, steam, socket, writer, _ = make_handler()

    with pytest.raises(ProtocolError):
        await handler.handle(ServerMessage("link", payload), writer)

    assert steam.invites == []
    assert socket.sent == []


@pytest.mark.asyncio
async def test_message_is_printed():
    handler, _, socket, writer, stdout = make_handler()

    await handler.handle(ServerMessage("message", {"message": "Server restarts in 5 minutes\nSorry!"}), writer)

    assert "✉ Message from the server:\n  Server restarts in 5 minutes\n  Sorry!\n" in stdout.getvalue()
    assert socket.sent == []


@pytest.mark.asyncio
async def test_exit_requests_shutdown():
    handler, _, _, writer, stdout = make_handler()

    assert await handler.handle(ServerMessage("exit", {}), writer) is True
    assert "□ The server asked the client to exit." in stdout.getvalue()


@pytest.mark.asyncio
async def test_unknown_command_is_ignored():
    handler, _, socket, writer, _ = make_handler()

    assert await handler.handle(ServerMessage("dance", {}), writer) is False
    assert socket.sent == []


# ---------------------------------------------------------------------
# Steam callbacks
# ---------------------------------------------------------------------

def test_guest_callbacks_update_status():
    handler, steam, _, _, stdout = make_handler()
    handler.setup_steam_callbacks()

    steam.on_guest_joined(GuestEvent(1, 413150, "alice"))
    steam.on_guest_joined(GuestEvent(2, 413150))
    assert handler.guest_count == 2

    steam.on_guest_left(GuestEvent(1, 413150, "alice"))
    steam.on_guest_left(GuestEvent(2, 413150))

    output = stdout.getvalue()
    assert "→ alice joined the Remote Play session (413150)" in output
    assert "→ 2 joined the Remote Play session (413150)" in output
    assert "▶ Remote Play: 2 guest(s) connected" in output
    assert "← alice left the Remote Play session (413150)" in output
    assert handler.guest_count == 0
    assert output.endswith(ONLINE_STATUS + "\n")
