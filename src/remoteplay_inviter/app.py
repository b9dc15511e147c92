""" app.py

Entry point. Prints the banner, handles the two flags, then:
1. attaches to Steam and starts the Steam callback poller,
2. resolves the relay url,
3. runs the relay supervisor until the server asks the client to exit,
4. waits for Ctrl+C.

A failure in 1 or 2 is reported once and skips straight to 4, so the operator gets to read it before the window closes.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from dotenv import load_dotenv

from .cli import banner, parse_args, program_name, usage
from .config import AppSettings, ConfigStore
from .console import StatusConsole, configure_logging
from .errors import StartupError, SteamControllerError
from .relay.message_handler import MessageHandler
from .relay.relay_connector import RelayConnector
from .relay.relay_supervisor import SessionSupervisor, resolve_relay_url
from .relay.ws_error_handler import ConnectionErrorClassifier
from .steam.invite_handler import InviteMessageHandler
from .steam.steam_controller import SteamCallbackPoller, initialize_steam
from .version import __version__

logger = logging.getLogger(__name__)

WaitForExit = Callable[[], Awaitable[None]]


async def wait_forever():
    # Ctrl+C cancels this through asyncio.run.
    await asyncio.Event().wait()


async def exit_prompt(console: StatusConsole, wait_for_exit: WaitForExit = wait_forever):
    console.print_line("□ Press Ctrl+C to exit...")
    await wait_for_exit()


async def run_relay(settings: AppSettings, console: StatusConsole, handler: MessageHandler, connector: RelayConnector):
    try:
        url = resolve_relay_url(ConfigStore(settings.config_dir), settings.endpoint_url, console, __version__)
    except StartupError as e:
        console.print_error(f"☓ {e}")
        return

    classifier = ConnectionErrorClassifier(console, __version__, settings.relay.stop_on_rejection)
    supervisor = SessionSupervisor(url, connector.connect, handler, console, classifier, settings.relay)
    await supervisor.run()


async def run(settings: AppSettings, console: StatusConsole, wait_for_exit: WaitForExit = wait_forever):
    connector = RelayConnector()
    poller: Optional[SteamCallbackPoller] = None
    try:
        loop = asyncio.get_running_loop()
        try:
            steam = await loop.run_in_executor(None, initialize_steam, settings.steam_controller)
        except SteamControllerError as e:
            console.print_error(f"☓ {e}")
        else:
            handler = InviteMessageHandler(steam, console)
            handler.setup_steam_callbacks()
            poller = SteamCallbackPoller(steam, settings.steam_poll_interval)
            poller.start()

            await run_relay(settings, console, handler, connector)

        await exit_prompt(console, wait_for_exit)
    finally:
        if poller is not None:
            await poller.stop()
        await connector.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    console = StatusConsole()

    console.print_block(banner(__version__))
    if args.version:
        console.print_line(f"✓ Version: {__version__}")
        return 0
    if args.help:
        console.print_block(usage(program_name()))
        return 0

    load_dotenv()
    settings: Optional[AppSettings] = None
    try:
        settings = AppSettings.load_from_env()
        configure_logging(console, settings.log_level)
    except (StartupError, ValueError) as e:
        console.print_error(f"☓ {e}")
        settings = None

    try:
        if settings is not None:
            asyncio.run(run(settings, console))
        else:
            asyncio.run(exit_prompt(console))
    except KeyboardInterrupt:
        pass
    return 0
