"""
tcp-client protocol package

Framing of requests and responses on the wire:

    request:   <action> <decimal-length> <message>
    response:  <decimal-length> <payload>

Neither frame has a terminator; the declared length is the exact byte
count of what follows the separating space.
"""

# Actions
from .ids import Action

# Codec, sender and errors
from .base import (
    TcpClientError,
    NetworkError,
    ConnectError,
    SendError,
    ReceiveError,
    FrameError,
    encode_frame,
    encode_request,
    decode_request,
    parse_length_prefix,
    send_request,
)

# Response reassembly
from .reassembly import (
    DEFAULT_BUFFER_SIZE,
    ResponseReassembler,
    receive_until,
)

__all__ = [
    "Action",

    # Errors
    "TcpClientError",
    "NetworkError",
    "ConnectError",
    "SendError",
    "ReceiveError",
    "FrameError",

    # Codec
    "encode_frame",
    "encode_request",
    "decode_request",
    "parse_length_prefix",

    # Sending and receiving
    "send_request",
    "DEFAULT_BUFFER_SIZE",
    "ResponseReassembler",
    "receive_until",
]
