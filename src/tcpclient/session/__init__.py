"""
tcp-client session management

A session owns one connection and drives a script over it: every line is
sent as a request, then responses are received until the line's completion
predicate is satisfied.
"""

from .base import (
    ConnectionState,
    ResponsePrinter,
    Session,
    close_connection,
)
from .registry import (
    load_config,
    get_config,
    get_all_config,
    set_config,
    setup_logging,
)

__all__ = [
    # Session
    "ConnectionState",
    "ResponsePrinter",
    "Session",
    "close_connection",
    # Configuration
    "load_config",
    "get_config",
    "get_all_config",
    "set_config",
    "setup_logging",
]
