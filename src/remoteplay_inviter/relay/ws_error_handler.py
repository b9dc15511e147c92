""" ws_error_handler.py

Turns a failed connection attempt into something the operator can act on.

The relay rejects handshakes it does not like with a plain http 400 and a JSON document in the X-Error header:
    {"message": "optional text", "error": {"type": "Outdated", "required": "1.2.0", "download": "https://..."}}
or any other error type, in which case only the message is interesting.

An outdated client gets an upgrade notice and the download page opens in the browser. Other structured rejections print the server's message.
If the header is missing or unreadable, the rejection is reported like any other connection error.
Everything that is not a 400 rejection passes through unchanged.
"""
import json
import logging
import webbrowser
from typing import Callable

from ..console import StatusConsole
from ..errors import HandshakeRejected, RelayError
from .relay_classes import (ERROR_HEADER, ClassifiedError, ConnectionErrorPayload,
                            OutdatedError)

logger = logging.getLogger(__name__)

BAD_REQUEST = 400


def _open_in_browser(url: str) -> bool:
    return webbrowser.open(url)


class ConnectionErrorClassifier:

    def __init__(self, console: StatusConsole, current_version: str, stop_on_rejection: bool = False,
                 open_browser: Callable[[str], bool] = _open_in_browser):
        self._console: StatusConsole = console
        self._current_version: str = current_version
        self._stop_on_rejection: bool = stop_on_rejection
        self._open_browser: Callable[[str], bool] = open_browser

    def classify(self, error: RelayError) -> ClassifiedError:
        if not isinstance(error, HandshakeRejected):
            return ClassifiedError(error)

        if error.status != BAD_REQUEST:
            logger.debug("Handshake rejected with status %d", error.status)
            return ClassifiedError(error)

        try:
            payload = self._parse_rejection(error)
        except RelayError as parse_error:
            logger.debug("Could not read the rejection details", exc_info=True)
            return ClassifiedError(parse_error)

        if isinstance(payload.error, OutdatedError):
            self._show_update_notice(payload.error)
        elif payload.message is not None:
            self._show_connection_error(payload.message)

        return ClassifiedError(None, self._stop_on_rejection)

    @staticmethod
    def _parse_rejection(error: HandshakeRejected) -> ConnectionErrorPayload:
        header = error.headers.get(ERROR_HEADER)
        if header is None:
            raise RelayError("Connection refused without error message") from error
        if isinstance(header, bytes):
            try:
                header = header.decode("utf-8")
            except UnicodeDecodeError as e:
                raise RelayError("Connection refused with invalid error message") from e
        try:
            return ConnectionErrorPayload.from_dict(json.loads(header))
        except ValueError as e:
            raise RelayError(f"Connection refused with invalid error message: {e}") from e

    def _show_update_notice(self, outdated: OutdatedError):
        self._console.print_block(f"""

            ↑ Update required: {self._current_version} to {outdated.required}
              Download: {outdated.download}

            """)
        try:
            self._open_browser(outdated.download)
        except Exception:
            # the notice above already carries the link.
            logger.debug("Could not open %s in a browser", outdated.download, exc_info=True)

    def _show_connection_error(self, message: str):
        indented = "\n".join(f"  {line}" for line in message.splitlines())
        self._console.print_block("\n\n☓ Connection error:\n" + indented + "\n\n")
