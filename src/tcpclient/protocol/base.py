import socket
import sys
import logging
logger = logging.getLogger(__name__)

from .ids import Action
from ..util import hexdump

ENCODING = "utf-8"
SEPARATOR = b" "
# longest length that can still index a buffer
MAX_LENGTH_DIGITS = len(str(sys.maxsize))


class TcpClientError(Exception):
    """Base class for all tcp-client errors"""
    pass

class NetworkError(TcpClientError):
    """Raised when the connection cannot be used"""
    pass

class ConnectError(NetworkError):
    """Raised when no resolved address accepts a connection"""
    pass

class SendError(NetworkError):
    """Raised when writing a request to the connection fails"""
    pass

class ReceiveError(NetworkError):
    """Raised when reading responses from the connection fails"""
    pass

class FrameError(TcpClientError):
    """Raised when bytes do not follow the length-prefix framing"""
    pass


def _to_bytes(message: str | bytes) -> bytes:
    if isinstance(message, str):
        return message.encode(ENCODING)
    return bytes(message)


def encode_frame(payload: str | bytes) -> bytes:
    """
    Build a response frame: ``<decimal-length> <payload>``.

    There is no terminator after the payload, the declared length is the
    exact payload byte count.
    """
    data = _to_bytes(payload)
    return str(len(data)).encode("ascii") + SEPARATOR + data


def encode_request(action: Action | str, message: str | bytes) -> bytes:
    """
    Build a request frame: ``<action> <decimal-length> <message>``.

    Args:
        action: Action (or its literal word) put in front of the frame
        message: Message text, encoded as UTF-8 when given as str

    Returns:
        The complete request as bytes
    """
    if isinstance(action, Action):
        action = action.value
    return action.encode("ascii") + SEPARATOR + encode_frame(message)


def parse_length_prefix(data, end: int | None = None) -> tuple[int, int] | None:
    """
    Parse the ``<decimal-length> `` prefix at the start of ``data[:end]``.

    Returns:
        (declared_length, header_length) where header_length counts the
        digits plus the separating space, or None while the prefix is
        still incomplete (digits only, no space yet).

    Raises:
        FrameError: If the data cannot be the start of a frame
    """
    if end is None:
        end = len(data)
    if end == 0:
        return None
    if not 0x30 <= data[0] <= 0x39:
        raise FrameError(f"Frame does not start with a digit (got 0x{data[0]:02X})")
    for index in range(1, end):
        byte = data[index]
        if byte == 0x20:
            try:
                declared = int(bytes(data[:index]))
            except ValueError as e:
                raise FrameError(f"Unparsable length prefix: {e}") from e
            return declared, index + 1
        if index >= MAX_LENGTH_DIGITS:
            raise FrameError(f"Length prefix longer than {MAX_LENGTH_DIGITS} digits")
        if not 0x30 <= byte <= 0x39:
            raise FrameError(f"Non-digit 0x{byte:02X} in length prefix at offset {index}")
    return None


def decode_request(data: bytes) -> tuple[Action, bytes]:
    """
    Split one complete request frame back into its action and message.

    Raises:
        FrameError: On an unknown action, a bad length prefix or a payload
            that does not match the declared length
    """
    word, sep, rest = bytes(data).partition(SEPARATOR)
    if not sep:
        raise FrameError("Request has no action separator")
    action = Action.parse(word.decode("ascii", errors="replace"))
    if action is None:
        raise FrameError(f"Unknown action {word!r}")
    prefix = parse_length_prefix(rest)
    if prefix is None:
        raise FrameError("Request length prefix is incomplete")
    declared, header = prefix
    payload = rest[header:]
    if len(payload) != declared:
        raise FrameError(f"Length mismatch (got {len(payload)}, expected {declared})")
    return action, payload


def send_request(conn: socket.socket, action: Action | str, message: str | bytes) -> int:
    """
    Frame ``action`` and ``message`` and write the whole request to ``conn``.

    A single send() may write fewer bytes than requested, so this keeps
    writing the remainder until every byte is out.

    Returns:
        Number of bytes written

    Raises:
        SendError: If the connection reports an error mid-transmission
    """
    request = encode_request(action, message)
    view = memoryview(request)
    total_sent = 0
    while total_sent < len(request):
        try:
            sent = conn.send(view[total_sent:])
        except OSError as e:
            raise SendError(f"Send failed after {total_sent} of {len(request)} bytes: {e}") from e
        if sent == 0:
            raise SendError(f"Connection stopped accepting data after {total_sent} bytes")
        total_sent += sent
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Sent {total_sent} byte request for {action}:\n{hexdump(request)}")
    return total_sent
