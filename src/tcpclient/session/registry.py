"""
Configuration loading and logging setup.
"""

import os
import sys
import importlib.util
from pathlib import Path
from typing import Any
import logging
logger = logging.getLogger(__name__)

ENABLE_COLOR = sys.stderr.isatty()
# ANSI escape codes for colors
LEVEL_COLORS = {
    "DEBUG": "\033[36m" if ENABLE_COLOR else "",    # Cyan
    "INFO": "\033[32m" if ENABLE_COLOR else "",     # Green
    "WARNING": "\033[33m" if ENABLE_COLOR else "",  # Yellow
    "ERROR": "\033[31m" if ENABLE_COLOR else "",    # Red
    "CRITICAL": "\033[41m" if ENABLE_COLOR else "", # Red background
}
RESET_COLOR = "\033[0m" if ENABLE_COLOR else ""

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(module)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

CONFIG_DIRS_ENV = "TCPCLIENT_CONFIG_DIRS"
LOG_LEVEL_ENV = "TCPCLIENT_LOG_LEVEL"

class ColorFormatter(logging.Formatter):
    def format(self, record):
        levelname = record.levelname
        if levelname in LEVEL_COLORS:
            record.levelname = f"{LEVEL_COLORS[levelname]}{levelname}{RESET_COLOR}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname

# set some sane defaults for every key the client reads
_default_config: dict[str, Any] = {
    "host": "localhost",
    "port": "8080",
    "log_level": "WARNING",
    "use_colors": True,
    "buffer_size": 1024,
    "responses_per_request": 1,
    "strict_framing": False,
}

_global_config: dict[str, Any] = {}
_config_loaded: bool = False
_handler: logging.Handler | None = None


def setup_logging(color: bool = False, level: int | str = logging.WARNING, reconfigure: bool = False) -> None:
    """
    Install the stderr log handler on the root logger.

    Calling again only changes anything with ``reconfigure=True``, in which
    case the previous handler is replaced.
    """
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        if not reconfigure:
            return
        root.removeHandler(_handler)

    if color:
        formatter = ColorFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    else:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    _handler = logging.StreamHandler()
    _handler.setFormatter(formatter)

    root.addHandler(_handler)
    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)


def _get_config_directories() -> list[Path]:
    """
    Get all directories to search for a config.py file.

    Returns:
        List of Path objects, lowest precedence first
    """
    directories = []

    # 1. configs directory relative to project root
    try:
        current = Path(__file__).resolve()
        for parent in current.parents:
            if (parent / "pyproject.toml").exists():
                dev_dir = parent / "configs"
                if dev_dir.is_dir():
                    directories.append(dev_dir)
                break
    except (OSError, RecursionError):
        pass

    # 2. Additional directories from environment variable
    env_dirs = os.environ.get(CONFIG_DIRS_ENV, "")
    if env_dirs:
        for dir_path in env_dirs.split(os.pathsep):
            if dir_path:
                try:
                    path = Path(dir_path).resolve()
                    if path.is_dir() and path not in directories:
                        directories.append(path)
                except (OSError, RecursionError):
                    logger.warning(f"Could not resolve path '{dir_path}', skipping.")
                    continue

    return directories


def _load_config_from_file(filepath: Path) -> dict[str, Any]:
    """
    Load configuration from a Python file defining a ``config`` dict.

    Args:
        filepath: Path to the config file

    Returns:
        Dictionary of configuration values, empty if the file is unusable
    """
    config = {}

    spec = importlib.util.spec_from_file_location(f"_tcpclient_config_{filepath.stem}", filepath)
    if spec is None or spec.loader is None:
        logger.warning(f"Cannot load config from {filepath}")
        return config

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        logger.warning(f"Failed to load config from {filepath}: {e}")
        return config

    config_var = getattr(module, "config", None)
    if config_var is None:
        logger.warning(f"No 'config' variable found in {filepath}")
    elif isinstance(config_var, dict):
        config = config_var
    else:
        logger.warning(f"'config' in {filepath} is not a dictionary, skipping.")
    return config


def load_config(config_file: str | Path | None = None) -> dict[str, Any]:
    """
    (Re)build the global configuration.

    Order, later entries win:
    1. Built-in defaults
    2. config.py in every config directory
    3. ``config_file`` if given
    4. The TCPCLIENT_LOG_LEVEL environment variable

    Raises:
        FileNotFoundError: If ``config_file`` does not exist

    Returns:
        A copy of the resulting configuration
    """
    global _global_config, _config_loaded
    _config_loaded = True
    _global_config = dict(_default_config)

    for directory in _get_config_directories():
        config_file_path = directory / "config.py"
        if config_file_path.exists():
            _global_config.update(_load_config_from_file(config_file_path))

    if config_file is not None:
        path = Path(config_file)
        if not path.is_file():
            raise FileNotFoundError(f"Config file '{config_file}' not found")
        _global_config.update(_load_config_from_file(path))

    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        _global_config["log_level"] = env_level.upper()

    setup_logging(
        color=_global_config.get("use_colors", True) and ENABLE_COLOR,
        level=_global_config.get("log_level", logging.WARNING),
        reconfigure=True,
    )
    return _global_config.copy()


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a global configuration value by key.

    Args:
        key: Configuration key
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if not _config_loaded:
        load_config()
    return _global_config.get(key, default)


def get_all_config() -> dict[str, Any]:
    """Get a copy of all global configuration values."""
    if not _config_loaded:
        load_config()
    return _global_config.copy()


def set_config(key: str, value: Any) -> None:
    """
    Set a global configuration value.

    Args:
        key: Configuration key
        value: Configuration value
    """
    if not _config_loaded:
        load_config()
    _global_config[key] = value
