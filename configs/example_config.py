"""
Example configuration for tcp-client.

Copy this file to configs/config.py (or to config.py in a directory listed
in TCPCLIENT_CONFIG_DIRS), or pass it with --config.
"""

config = {
    # server to connect to, -h/-p on the command line take precedence
    "host": "localhost",
    "port": "8080",
    "log_level": "WARNING",
    # will automatically disable itself if output is not a tty
    "use_colors": True,
    # initial receive buffer, doubled whenever a response does not fit
    "buffer_size": 1024,
    # responses to wait for after every request
    "responses_per_request": 1,
    # raise instead of discarding bytes that are not aligned to a frame
    "strict_framing": False,
}
