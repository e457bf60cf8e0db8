#!/usr/bin/env python3
import argparse
import sys
import logging
logger = logging.getLogger(__name__)

from .protocol import ConnectError, FrameError, NetworkError, ReceiveError, SendError
from .script import ScriptError, close_script, open_script, read_script
from .session import Session, load_config, set_config, setup_logging
from .session.registry import ENABLE_COLOR, get_config

HELP_MESSAGE = """
    Usage: tcp-client [--help] [-v] [-h HOST] [-p PORT] [--config FILE] FILE

    Arguments:
    FILE   A file name containing actions and messages to
           send to the server. If "-" is provided, stdin will
           be read

    Options:
    --help
    -v, --verbose
    --host HOSTNAME, -h HOSTNAME
    --port PORT, -p PORT
    --config FILE   Python file defining a 'config' dict
"""


class UsageError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    # -h is the host, so argparse must not add its own -h/--help
    parser = _ArgumentParser(prog="tcp-client", add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-h", "--host", type=str)
    parser.add_argument("-p", "--port", type=str)
    parser.add_argument("--config", type=str)
    parser.add_argument("files", nargs="*", metavar="FILE")
    return parser


def _usage_error(message: str) -> int:
    logger.error(message)
    print(HELP_MESSAGE)
    return 1


def _is_valid_port(port: str) -> bool:
    return port.isascii() and port.isdigit()


def main(argv: list[str] | None = None) -> int:
    setup_logging(color=ENABLE_COLOR)

    try:
        args = _build_parser().parse_args(argv)
    except UsageError as e:
        return _usage_error(str(e))

    if args.help:
        print(HELP_MESSAGE)
        return 0
    if not args.files:
        return _usage_error("Missing argument(s)!")
    if len(args.files) > 1:
        return _usage_error("Too many arguments!")
    if args.port is not None and not _is_valid_port(args.port):
        return _usage_error(f"'{args.port}' is not a valid port")

    try:
        load_config(args.config)
    except FileNotFoundError as e:
        logger.error(f"config: {e}")
        return 1

    if args.verbose:
        set_config("log_level", "DEBUG")
        setup_logging(color=get_config("use_colors", True) and ENABLE_COLOR, level=logging.DEBUG, reconfigure=True)
        logger.info("Verbose is ON")
    if args.host:
        logger.info(f"Host is set to '{args.host}'")
    if args.port:
        logger.info(f"Port is set to '{args.port}'")

    try:
        source = open_script(args.files[0])
    except ScriptError as e:
        logger.error(f"script: {e}")
        return 1

    session = Session.from_config(host=args.host, port=args.port)
    status = 0
    try:
        session.connect()
        session.run(read_script(source))
    except ConnectError as e:
        logger.error(f"connect: {e}")
        status = 1
    except SendError as e:
        logger.error(f"send: {e}")
        status = 1
    except (ReceiveError, FrameError) as e:
        logger.error(f"receive: {e}")
        status = 1
    except NetworkError as e:
        logger.error(f"network: {e}")
        status = 1
    except ScriptError as e:
        logger.error(f"script: {e}")
        status = 1
    finally:
        if session.is_connected:
            session.close()
        close_script(source)
    return status


if __name__ == "__main__":
    sys.exit(main())
