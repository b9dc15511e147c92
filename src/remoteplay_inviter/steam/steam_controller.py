""" steam_controller.py

The interface to the local Steam client, and the background task that keeps its callbacks flowing.

The Steam automation itself (Steamworks, Remote Play Together) is not part of this package. An implementation of SteamController is loaded at startup from the
"module:attribute" path in REMOTEPLAY_STEAM_CONTROLLER. The attribute can be the class itself or any callable that returns an instance.

Steam delivers its events (guest joined, guest left, ...) through callbacks that only fire while someone calls poll_events(). SteamCallbackPoller does that on a
worker thread, forever, next to the relay task. Callbacks therefore run on that worker thread, which is why the console they print to is thread safe.

Steamworks itself is not thread safe. Every call into a controller goes through call_locked(), which holds the controller's lock, so polling
and invite creation never run at the same time.
"""
import asyncio
import importlib
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, List, NamedTuple, Optional, TypeVar

from ..errors import SteamControllerError

logger = logging.getLogger(__name__)

STEAM_NOT_RUNNING = "Failed to connect to Steam Client. Please make sure Steam is running."

T = TypeVar("T")

_LOCK_CREATION = threading.Lock()


class SteamGame(NamedTuple):
    app_id: int
    name: str


class GuestEvent(NamedTuple):
    guest_id: int  # steam id of the friend
    app_id: int
    guest_name: Optional[str] = None


GuestCallback = Callable[[GuestEvent], None]


class SteamController(ABC):
    """Everything the client needs from Steam.

    Methods are blocking and are called from a worker thread, never from the event loop.
    """

    @property
    def lock(self) -> threading.RLock:
        """Held around every call into Steam. Reentrant, so a callback fired from poll_events may call back into the controller."""
        lock = getattr(self, "_steam_call_lock", None)
        if lock is None:
            with _LOCK_CREATION:
                lock = getattr(self, "_steam_call_lock", None)
                if lock is None:
                    lock = threading.RLock()
                    self._steam_call_lock = lock
        return lock

    @abstractmethod
    def initialize(self) -> None:
        """Attach to the running Steam client. Raise SteamControllerError when that is not possible."""
        pass

    @abstractmethod
    def poll_events(self) -> None:
        """Pump Steam's callback queue. Registered callbacks fire from inside this call."""
        pass

    @abstractmethod
    def list_games(self) -> List[SteamGame]:
        """Installed games that support Remote Play Together."""
        pass

    @abstractmethod
    def create_invite(self, app_id: int) -> str:
        """Start a Remote Play Together session for app_id and return the invite link."""
        pass

    @abstractmethod
    def register_callbacks(self, on_guest_joined: GuestCallback, on_guest_left: GuestCallback) -> None:
        pass


def load_steam_controller(path: Optional[str]) -> SteamController:
    """Import and build the controller named by a "module:attribute" path. Does not initialize it."""
    if not path:
        raise SteamControllerError(f"{STEAM_NOT_RUNNING} (no Steam controller configured in REMOTEPLAY_STEAM_CONTROLLER)")

    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise SteamControllerError(f"Invalid Steam controller path {path!r}, expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise SteamControllerError(f"Failed to load Steam controller {path!r}: {e}") from e

    try:
        controller = factory()
    except Exception as e:
        raise SteamControllerError(f"Failed to create Steam controller {path!r}: {e}") from e
    if not isinstance(controller, SteamController):
        raise SteamControllerError(f"{path!r} did not produce a SteamController")
    return controller


def call_locked(steam: SteamController, method: Callable[..., T], *args: Any) -> T:
    """Run a blocking controller method under the controller's lock. Meant for run_in_executor."""
    with steam.lock:
        return method(*args)


def initialize_steam(path: Optional[str]) -> SteamController:
    controller = load_steam_controller(path)
    try:
        call_locked(controller, controller.initialize)
    except SteamControllerError:
        raise
    except Exception as e:
        raise SteamControllerError(f"{STEAM_NOT_RUNNING} ({e})") from e
    return controller


class SteamCallbackPoller:
    """Calls SteamController.poll_events every interval seconds on the default executor until cancelled."""

    def __init__(self, steam: SteamController, interval: float = 0.1):
        self._steam: SteamController = steam
        self._interval: float = interval
        self._task: Optional[asyncio.Task] = None
        self._failures: int = 0

    @property
    def failures(self) -> int:
        return self._failures

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run(self):
        loop = asyncio.get_running_loop()
        failing = 0
        while True:
            try:
                await loop.run_in_executor(None, call_locked, self._steam, self._steam.poll_events)
            except Exception:
                # keep polling, Steam keeps queueing events. only the first failure of a streak is a warning.
                self._failures += 1
                failing += 1
                if failing == 1:
                    logger.warning("Steam callback polling failed", exc_info=True)
                else:
                    logger.debug("Steam callback polling failed again (%d in a row)", failing, exc_info=True)
            else:
                if failing:
                    logger.info("Steam callback polling recovered after %d failure(s)", failing)
                    failing = 0
            await asyncio.sleep(self._interval)
