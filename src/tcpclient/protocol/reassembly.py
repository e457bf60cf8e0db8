"""
Reassembly of length-prefixed response frames from a byte stream.

Responses arrive as ``<decimal-length> <payload>`` frames with nothing in
between, split across socket reads at arbitrary points. The reassembler
keeps one growable buffer per receive loop, reads into its free tail and
cuts complete frames off the front.
"""

import socket
from typing import Callable, Iterator
import logging
logger = logging.getLogger(__name__)

from .base import FrameError, ReceiveError, parse_length_prefix
from ..util import hexdump

DEFAULT_BUFFER_SIZE = 1024


class ResponseReassembler:
    """
    Turns arbitrary chunks read from a connection into complete payloads.

    The buffer is a bytearray arena plus a count of valid bytes at its
    front. It doubles whenever a declared frame does not fit and never
    shrinks. Frames are handed out in wire order; several frames delivered
    by one read are decoded without reading again.

    When the valid bytes cannot start a frame (desync), they are dropped
    and a warning is logged. With ``strict=True`` a FrameError is raised
    instead.
    """

    def __init__(self, initial_size: int = DEFAULT_BUFFER_SIZE, strict: bool = False):
        if initial_size < 1:
            raise ValueError(f"Buffer size must be positive, got {initial_size}")
        self._buffer = bytearray(initial_size)
        self._valid = 0
        self.strict = strict
        self.growths = 0
        self.discarded_bytes = 0

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet decoded"""
        return self._valid

    def _fill(self, conn: socket.socket) -> int:
        """Read once into the free tail of the buffer. Returns bytes read."""
        try:
            with memoryview(self._buffer) as whole, whole[self._valid:] as tail:
                received = conn.recv_into(tail)
        except OSError as e:
            raise ReceiveError(f"Receive failed: {e}") from e
        self._valid += received
        return received

    def _grow(self, minimum: int) -> None:
        size = len(self._buffer)
        while size < minimum:
            size *= 2
        try:
            grown = bytearray(size)
        except (MemoryError, OverflowError) as e:
            raise ReceiveError(f"Cannot buffer a {minimum} byte frame: {e!r}") from e
        grown[:self._valid] = self._buffer[:self._valid]
        logger.debug(f"Growing receive buffer {len(self._buffer)} -> {size} bytes")
        self._buffer = grown
        self.growths += 1

    def _discard(self, error: FrameError) -> None:
        dropped = self._valid
        self._valid = 0
        if self.strict:
            raise error
        self.discarded_bytes += dropped
        logger.warning(f"Discarding {dropped} buffered bytes not aligned to a frame: {error}")

    def _next_frame(self) -> bytes | None:
        """
        Cut one complete frame off the front of the buffer.

        Returns:
            The payload, or None when more bytes must be read first
        """
        try:
            prefix = parse_length_prefix(self._buffer, self._valid)
        except FrameError as e:
            self._discard(e)
            return None

        if prefix is None:
            # length digits fill the whole buffer, make room for the rest
            if self._valid == len(self._buffer):
                self._grow(len(self._buffer) * 2)
            return None

        declared, header = prefix
        if declared > len(self._buffer) - header:
            self._grow(header + declared)
            return None
        consumed = header + declared
        if self._valid < consumed:
            return None

        payload = bytes(self._buffer[header:consumed])
        remaining = self._valid - consumed
        self._buffer[:remaining] = self._buffer[consumed:self._valid]
        self._valid = remaining

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Received {declared} byte response:\n{hexdump(payload)}")
        return payload

    def messages(self, conn: socket.socket) -> Iterator[bytes]:
        """
        Yield decoded payloads from ``conn`` until the peer closes it.

        Bytes already buffered from an earlier call are decoded first.
        Stopping the iteration early keeps any undecoded bytes buffered.

        Raises:
            ReceiveError: If reading from the connection fails
            FrameError: On desync in strict mode
        """
        while True:
            while True:
                payload = self._next_frame()
                if payload is None:
                    break
                yield payload

            if self._fill(conn) == 0:
                if self._valid:
                    logger.warning(f"Connection closed with {self._valid} bytes of an incomplete frame")
                else:
                    logger.info("Connection closed.")
                return

    def receive_until(self, conn: socket.socket, is_done: Callable[[bytes], bool]) -> bool:
        """
        Feed each decoded message to ``is_done`` until it returns True.

        Returns:
            True if ``is_done`` ended the loop, False if the peer closed
            the connection first
        """
        for message in self.messages(conn):
            if is_done(message):
                return True
        return False


def receive_until(
    conn: socket.socket,
    is_done: Callable[[bytes], bool],
    reassembler: ResponseReassembler | None = None,
    *,
    initial_size: int = DEFAULT_BUFFER_SIZE,
    strict: bool = False,
) -> bool:
    """
    Receive responses from ``conn`` until ``is_done`` signals completion.

    A fresh buffer is used for each call unless ``reassembler`` is given,
    in which case bytes following the last wanted frame stay buffered for
    the next call.
    """
    if reassembler is None:
        reassembler = ResponseReassembler(initial_size=initial_size, strict=strict)
    return reassembler.receive_until(conn, is_done)
