from enum import Enum, auto
import socket
import sys
from typing import Callable, Iterable, TextIO
import logging
logger = logging.getLogger(__name__)

from ..protocol import (
    Action,
    ConnectError,
    NetworkError,
    ResponseReassembler,
    TcpClientError,
    DEFAULT_BUFFER_SIZE,
    send_request,
)
from ..protocol.base import ENCODING
from ..script import ScriptLine


class ConnectionState(Enum):
    """Connection states of a session"""
    DISCONNECTED = auto()
    CONNECTED = auto()
    SENDING = auto()
    RECEIVING = auto()
    CLOSED = auto()


def close_connection(conn: socket.socket | None) -> bool:
    """
    Close ``conn``.

    Returns:
        True on success, False if there was nothing open to close
    """
    if conn is None:
        logger.error("Failed to close connection: never opened")
        return False
    if conn.fileno() == -1:
        logger.error("Failed to close connection: already closed")
        return False
    try:
        conn.close()
    except OSError as e:
        logger.error(f"Failed to close connection: {e}")
        return False
    return True


class ResponsePrinter:
    """
    Completion predicate that prints every response it is given.

    Signals completion once ``expected`` responses have been seen.
    """

    def __init__(self, expected: int = 1, out: TextIO | None = None):
        self.expected = expected
        self.out = out
        self.responses: list[bytes] = []

    @property
    def done(self) -> bool:
        return len(self.responses) >= self.expected

    def __call__(self, message: bytes) -> bool:
        self.responses.append(message)
        print(message.decode(ENCODING, errors="replace"), file=self.out or sys.stdout)
        return self.done


class Session:
    """
    One connection to a server, driven by a script.

    State Transition Logic:
    ----------------------
        DISCONNECTED -> CONNECTED        connect()
        CONNECTED -> SENDING -> RECEIVING -> CONNECTED
                                         for every script line
        any state -> CLOSED              close(), script exhausted or fatal error

    A closed session cannot be reconnected.
    """

    def __init__(
        self,
        host: str,
        port: int | str,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        strict_framing: bool = False,
        responses_per_request: int = 1,
        out: TextIO | None = None,
    ):
        self.host = host
        self.port = port
        self.responses_per_request = responses_per_request
        self.out = out

        self._state = ConnectionState.DISCONNECTED
        self._socket: socket.socket | None = None
        self._reassembler = ResponseReassembler(initial_size=buffer_size, strict=strict_framing)

    @classmethod
    def from_config(cls, out: TextIO | None = None, **overrides) -> "Session":
        """
        Create a session from the global configuration, ``overrides`` win.

        ``out`` is where responses are printed, standard output by default.
        """
        from .registry import get_all_config
        config = get_all_config()
        config.update({k: v for k, v in overrides.items() if v is not None})
        return cls(
            config["host"],
            config["port"],
            buffer_size=int(config.get("buffer_size", DEFAULT_BUFFER_SIZE)),
            strict_framing=bool(config.get("strict_framing", False)),
            responses_per_request=int(config.get("responses_per_request", 1)),
            out=out,
        )

    @property
    def state(self) -> ConnectionState:
        """Get current connection state"""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state in (ConnectionState.CONNECTED, ConnectionState.SENDING, ConnectionState.RECEIVING)

    def _transition_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        self._state = new_state
        logger.debug(f"State transition: {old_state.name} -> {new_state.name}")

    def connect(self) -> None:
        """
        Connect to the first resolved address of host and port that accepts.

        Raises:
            ConnectError: If the name does not resolve or every address fails
        """
        if self._state != ConnectionState.DISCONNECTED:
            raise ConnectError(f"Cannot connect a session in state {self._state.name}")

        try:
            candidates = socket.getaddrinfo(self.host, self.port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            raise ConnectError(f"Cannot resolve {self.host}:{self.port}: {e}") from e

        for family, socktype, proto, _, address in candidates:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                logger.warning(f"Cannot create socket for {address}: {e}")
                continue
            try:
                sock.connect(address)
            except OSError as e:
                sock.close()
                logger.warning(f"Failed to connect to {address}: {e}")
                continue
            self._socket = sock
            self._transition_state(ConnectionState.CONNECTED)
            logger.info(f"Connected to {self.host}:{self.port} ({address[0]})")
            return

        raise ConnectError(f"Failed to connect to {self.host}:{self.port}")

    def _require_connection(self) -> socket.socket:
        if self._socket is None or not self.is_connected:
            raise NetworkError(f"Session is not connected (state {self._state.name})")
        return self._socket

    def send(self, action: Action | str, message: str | bytes) -> int:
        """Send one request. Raises SendError on failure."""
        sock = self._require_connection()
        self._transition_state(ConnectionState.SENDING)
        sent = send_request(sock, action, message)
        self._transition_state(ConnectionState.CONNECTED)
        return sent

    def receive_until(self, is_done: Callable[[bytes], bool]) -> bool:
        """
        Receive responses until ``is_done`` returns True.

        Returns:
            False if the server closed the connection first
        """
        sock = self._require_connection()
        self._transition_state(ConnectionState.RECEIVING)
        finished = self._reassembler.receive_until(sock, is_done)
        self._transition_state(ConnectionState.CONNECTED)
        return finished

    def run(
        self,
        lines: Iterable[ScriptLine],
        make_handler: Callable[[ScriptLine], Callable[[bytes], bool]] | None = None,
    ) -> int:
        """
        Send every script line and wait for its responses, in order.

        Args:
            lines: Script lines to process
            make_handler: Builds the completion predicate for one line,
                defaults to a ResponsePrinter expecting
                ``responses_per_request`` responses

        Returns:
            Number of lines processed

        Raises:
            TcpClientError: On any send, receive, framing or script
                failure, after which the session is closed
        """
        processed = 0
        try:
            for line in lines:
                if make_handler is None:
                    handler = ResponsePrinter(self.responses_per_request, self.out)
                else:
                    handler = make_handler(line)
                self.send(line.action, line.message)
                finished = self.receive_until(handler)
                processed += 1
                if not finished:
                    logger.warning(f"Server closed the connection before all responses to line {processed} arrived")
                    break
        except TcpClientError:
            self.close()
            raise
        logger.info(f"Processed {processed} script lines")
        return processed

    def close(self) -> bool:
        """
        Close the connection and move to CLOSED.

        Returns:
            False if there was no open connection to close
        """
        closed = close_connection(self._socket)
        self._socket = None
        if self._state != ConnectionState.CLOSED:
            self._transition_state(ConnectionState.CLOSED)
        if closed:
            logger.info("Disconnected")
        return closed

    def __enter__(self) -> "Session":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._socket is not None:
            self.close()
