#!/usr/bin/env python3
"""
Shared helpers for the tcp-client tests: fake connections and a loopback
server speaking the request/response framing.
"""
import os
import sys
import socket
import struct
import threading

# Add src directory to sys.path so that tcpclient can be imported without installing.
src_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from tcpclient.protocol import Action, decode_request, encode_frame, parse_length_prefix


class ChunkedConnection:
    """
    Fake connection whose recv_into() hands out the scripted chunks in order,
    one per call, then reports end of stream. Chunks larger than the free
    buffer are split across calls.
    """

    def __init__(self, chunks=()):
        self.chunks = [bytes(c) for c in chunks]
        self.reads = 0
        self.closed = False

    def recv_into(self, buffer):
        self.reads += 1
        if not self.chunks:
            return 0
        chunk = self.chunks.pop(0)
        n = min(len(chunk), len(buffer))
        buffer[:n] = chunk[:n]
        if n < len(chunk):
            self.chunks.insert(0, chunk[n:])
        return n


class FailingConnection:
    """Fake connection whose every read and write fails."""

    def recv_into(self, buffer):
        raise ConnectionResetError("connection reset by peer")

    def send(self, data):
        raise BrokenPipeError("broken pipe")


def chunked(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


def transform(action: Action, payload: bytes) -> bytes:
    """What the reference server does with a request payload."""
    if action == Action.UPPERCASE:
        return payload.upper()
    if action == Action.LOWERCASE:
        return payload.lower()
    if action == Action.REVERSE:
        return payload[::-1]
    return payload


class LoopbackServer(threading.Thread):
    """
    One-connection server on 127.0.0.1 that answers every request with the
    frames returned by ``respond(action, payload)``, written in pieces of
    ``chunk_size`` bytes. Handles at most ``max_requests`` requests, then
    closes the connection. With ``reset=True`` the first request is answered
    by resetting the connection instead.
    """

    def __init__(self, respond=None, max_requests=None, chunk_size=None, reset=False):
        super().__init__(daemon=True)
        self.respond = respond or (lambda action, payload: encode_frame(transform(action, payload)))
        self.max_requests = max_requests
        self.chunk_size = chunk_size
        self.reset = reset
        self.received = []
        self._pending = b""
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]

    def _read_request(self, conn):
        while True:
            word, sep, rest = self._pending.partition(b" ")
            if sep:
                prefix = parse_length_prefix(rest)
                if prefix is not None:
                    declared, header = prefix
                    size = len(word) + 1 + header + declared
                    if len(self._pending) >= size:
                        frame, self._pending = self._pending[:size], self._pending[size:]
                        return decode_request(frame)
            chunk = conn.recv(4096)
            if not chunk:
                return None
            self._pending += chunk

    def run(self):
        try:
            conn, _ = self._listener.accept()
        finally:
            self._listener.close()
        with conn:
            while self.max_requests is None or len(self.received) < self.max_requests:
                request = self._read_request(conn)
                if request is None:
                    break
                self.received.append(request)
                if self.reset:
                    # zero linger turns close() into a RST
                    conn.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
                    break
                reply = self.respond(*request)
                if self.chunk_size:
                    for piece in chunked(reply, self.chunk_size):
                        conn.sendall(piece)
                else:
                    conn.sendall(reply)


def unused_port() -> int:
    """Return a loopback port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
