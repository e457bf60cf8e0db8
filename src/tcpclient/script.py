"""
Reading of action scripts.

A script is plain text with one request per line:

    <action> <message-text>

Blank lines and lines starting with a space are ignored, as are lines
without a space or with an unknown action.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, TextIO
import logging
logger = logging.getLogger(__name__)

from .protocol import Action, TcpClientError

STDIN_NAME = "-"


class ScriptError(TcpClientError):
    """Raised when the script source cannot be opened or read"""
    pass


@dataclass
class ScriptLine:
    action: Action
    message: str


def parse_line(line: str) -> ScriptLine | None:
    """
    Parse one physical script line.

    Returns:
        The ScriptLine, or None if the line is to be skipped
    """
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]

    if not line or line[0] == " ":
        return None

    word, sep, message = line.partition(" ")
    if not sep:
        logger.debug(f"Skipping line without message: {line!r}")
        return None

    action = Action.parse(word)
    if action is None:
        logger.debug(f"Skipping line with unknown action {word!r}")
        return None
    return ScriptLine(action, message)


def read_script(source: TextIO) -> Iterator[ScriptLine]:
    """
    Lazily yield the valid lines of ``source`` in order.

    The generator ends when the source is exhausted and cannot be restarted.

    Raises:
        ScriptError: If reading the source fails
    """
    lineno = 0
    try:
        for raw in source:
            lineno += 1
            parsed = parse_line(raw)
            if parsed is not None:
                yield parsed
    except (OSError, UnicodeDecodeError) as e:
        raise ScriptError(f"Failed to read script after line {lineno}: {e}") from e


def open_script(name: str) -> TextIO:
    """
    Open the script named ``name``; "-" selects standard input.

    Raises:
        ScriptError: If the file cannot be opened or is empty
    """
    if name == STDIN_NAME:
        return sys.stdin

    path = Path(name)
    try:
        fd = open(path, "r", encoding="utf-8")
    except OSError as e:
        raise ScriptError(f"Failed to open file '{name}': {e}") from e

    try:
        empty = path.is_file() and os.fstat(fd.fileno()).st_size == 0
    except OSError as e:
        fd.close()
        raise ScriptError(f"Failed to inspect file '{name}': {e}") from e
    if empty:
        fd.close()
        raise ScriptError(f"File is empty: '{name}'")
    return fd


def close_script(fd: TextIO | None) -> bool:
    """
    Close a script opened with open_script().

    Returns:
        True on success, False if ``fd`` is None or closing failed
    """
    if fd is None:
        logger.error("Failed to close file: bad file object")
        return False
    if fd is sys.stdin:
        return True
    try:
        fd.close()
    except OSError as e:
        logger.error(f"Failed to close file: {e}")
        return False
    return True
