"""Request dispatch loop for the Safari Reading List native host."""
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from safari_reading_list.config import Config, get_config
from safari_reading_list.errors import (
    DecodeFailure,
    HostError,
    IOFailure,
    MissingParameter,
    PeerDisconnected,
)
from safari_reading_list.messaging import MessageChannel
from safari_reading_list.plist_store import PlistDocument, load_document, save_document
from safari_reading_list.plist_value import to_json
from safari_reading_list.reading_list import delete_by_url, reading_list_items


logger = logging.getLogger(__name__)

Response = Dict[str, Any]


def success_response(data: Any = None, message: Optional[str] = None) -> Response:
    response: Response = {"success": True}
    if message is not None:
        response["message"] = message
    else:
        response["data"] = data
    return response


def failure_response(error: str) -> Response:
    return {"success": False, "error": error}


class ReadingListHost:
    """Serves browser requests one at a time until the browser disconnects.

    The bookmarks file is reloaded for every request; nothing is cached.
    """

    def __init__(
        self,
        channel: MessageChannel,
        config: Optional[Config] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.channel = channel
        self.config = config or get_config()
        self._log = log or logger
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Response]] = {
            "getBookmarks": self.get_bookmarks,
            "deleteBookmark": self.delete_bookmark,
            "getReadingList": self.get_reading_list,
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _bookmarks_path(self) -> Path:
        path = self.config.resolve_bookmarks_path()
        if path is None:
            self._log.error("Could not determine bookmarks path")
            raise IOFailure("Could not determine bookmarks path")
        return path

    def get_bookmarks(self, message: Dict[str, Any]) -> Response:
        """Return the whole bookmarks document."""
        document = load_document(self._bookmarks_path())
        try:
            data = to_json(document.root)
        except RecursionError as e:
            self._log.error("Error encoding bookmarks: %s", e)
            raise DecodeFailure(f"Error encoding bookmarks: {e}") from e
        return success_response(data=data)

    def get_reading_list(self, message: Dict[str, Any]) -> Response:
        """Return the Reading List entries as flat records."""
        document = load_document(self._bookmarks_path())
        items = reading_list_items(document.root, self.config.reading_list_title, self._log)
        return success_response(data=items)

    def delete_bookmark(self, message: Dict[str, Any]) -> Response:
        """Remove a URL from the Reading List and save the file if it changed."""
        url = message.get("url")
        if not isinstance(url, str):
            raise MissingParameter("URL parameter is required for deleteBookmark command")

        path = self._bookmarks_path()
        self._log.info("Attempting to delete bookmark with URL: %s", url)
        self._log.info("Bookmarks path: %s", path)

        document = load_document(path)
        new_root, removed = delete_by_url(
            document.root, url, self.config.reading_list_title, self._log
        )
        if not removed:
            return failure_response(f"URL not found in reading list: {url}")

        save_document(PlistDocument(new_root, document.fmt), path, self._log)
        self._log.info("Successfully deleted bookmark with URL: %s", url)
        return success_response(message=f"Successfully deleted bookmark with URL: {url}")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, message: Dict[str, Any]) -> Optional[Response]:
        """Route one request to its command.

        Returns:
            The response to send, or None when the request carries no
            command string. Such requests get no reply at all.
        """
        command = message.get("command")
        if not isinstance(command, str):
            # The browser side gets no reply and may wait for one
            self._log.warning("Ignoring message without a command string")
            return None

        handler = self._handlers.get(command)
        if handler is None:
            return failure_response(f"Unknown command: {command}")

        try:
            return handler(message)
        except (MissingParameter, IOFailure, DecodeFailure) as e:
            return failure_response(str(e))

    def run(self) -> int:
        """Serve requests until the browser disconnects.

        Returns:
            Process exit status: 0 on disconnect, 1 on a read or write failure
        """
        while True:
            try:
                message = self.channel.read_message()
            except PeerDisconnected as e:
                self._log.info("Browser disconnected: %s", e)
                return 0
            except HostError as e:
                self._log.error("Error reading message: %s", e)
                print(f"Error reading message: {e}", file=sys.stderr)
                return 1

            response = self.handle(message)
            if response is None:
                continue

            try:
                self.channel.write_message(response)
            except HostError as e:
                self._log.error("Error sending message: %s", e)
                print(f"Error sending message: {e}", file=sys.stderr)
                return 1
