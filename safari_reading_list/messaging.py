"""Native messaging framing over a pair of byte streams.

Wire format: 4-byte unsigned length prefix in the host's native byte order,
followed by that many bytes of UTF-8 JSON. The browser side uses native order
too, so this must not be changed to network order.

stdout is reserved exclusively for frames. All diagnostics go to the logger.
"""
import json
import logging
import struct
from typing import Any, BinaryIO, Dict, Optional

from safari_reading_list.config import MAX_MESSAGE_SIZE
from safari_reading_list.errors import DecodeFailure, IOFailure, MessageTooLarge, PeerDisconnected


logger = logging.getLogger(__name__)

# "=" is native byte order with standard size and no alignment
LENGTH_PREFIX = struct.Struct("=I")


class MessageChannel:
    """Reads requests from and writes responses to the browser."""

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        max_message_size: int = MAX_MESSAGE_SIZE,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize the channel.

        Args:
            reader: Binary stream the browser writes requests to (stdin)
            writer: Binary stream responses are written to (stdout)
            max_message_size: Largest payload accepted or sent, in bytes
            log: Logger that receives every message body
        """
        self._reader = reader
        self._writer = writer
        self.max_message_size = max_message_size
        self._log = log or logger

    def _read_exactly(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            try:
                chunk = self._reader.read(remaining)
            except OSError as e:
                raise IOFailure(f"Error reading from browser: {e}") from e
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read_message(self) -> Dict[str, Any]:
        """Block until a complete request has been read.

        Returns:
            The decoded JSON object

        Raises:
            PeerDisconnected: If the stream ends while reading the length prefix
            MessageTooLarge: If the announced length exceeds the limit. The
                body is not read.
            IOFailure: If the stream ends mid-body or the read fails
            DecodeFailure: If the body is not a JSON object
        """
        header = self._read_exactly(LENGTH_PREFIX.size)
        if len(header) < LENGTH_PREFIX.size:
            raise PeerDisconnected(f"browser disconnected after {len(header)} header bytes")

        (length,) = LENGTH_PREFIX.unpack(header)
        if length > self.max_message_size:
            raise MessageTooLarge(length, self.max_message_size)

        body = self._read_exactly(length)
        if len(body) < length:
            raise IOFailure(f"stream closed after {len(body)} of {length} message bytes")

        self._log.info("Received message: %s", body.decode("utf-8", errors="replace"))

        try:
            message = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            self._log.error("Error unmarshaling message: %s", e)
            raise DecodeFailure(f"Error unmarshaling message: {e}") from e

        if not isinstance(message, dict):
            self._log.error("Message is not a JSON object: %s", type(message).__name__)
            raise DecodeFailure("Error unmarshaling message: expected a JSON object")

        return message

    def write_message(self, value: Any) -> None:
        """Send ``value`` as one frame.

        Raises:
            DecodeFailure: If ``value`` is not JSON-serializable
            MessageTooLarge: If the encoded payload exceeds the limit. Nothing
                is written.
            IOFailure: If writing to the stream fails. The connection is
                unusable afterwards.
        """
        try:
            payload = json.dumps(
                value, ensure_ascii=False, separators=(",", ":"), allow_nan=False
            ).encode("utf-8")
        except (TypeError, ValueError, RecursionError) as e:
            self._log.error("Error marshaling message: %s", e)
            raise DecodeFailure(f"Error marshaling message: {e}") from e

        # Byte length, not character count
        if len(payload) > self.max_message_size:
            raise MessageTooLarge(len(payload), self.max_message_size)

        self._log.info("Sending message: %s", payload.decode("utf-8"))

        try:
            self._writer.write(LENGTH_PREFIX.pack(len(payload)) + payload)
            self._writer.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise IOFailure(f"Error sending message: {e}") from e
