import logging
import os
import sys
from typing import Dict, Optional

import colorlog

from .. import constants

CONSOLE_FORMAT = '[%(levelname).4s] %(threadName)s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname).4s] %(threadName)s %(name)s: %(message)s'


def setup_logger(debug: bool = False, module_levels: Optional[Dict[str, str]] = None, log_file: Optional[str] = None):
    """
    Configures the root logger with colored console output.

    Workers log concurrently, so every line carries the thread name.

    Args:
        debug: Enable debug logging level
        module_levels: Per-module log levels, e.g. {"sched": "DEBUG"}
        log_file: Optional path to a log file written alongside the console
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Prevent duplicate handlers if this function is called multiple times
    if logger.handlers:
        _apply_module_levels(module_levels)
        return

    # Respect NO_COLOR env var (https://no-color.org/)
    use_colors = sys.stderr.isatty() and not os.environ.get("NO_COLOR")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.NOTSET)
    if use_colors:
        console_handler.setFormatter(colorlog.ColoredFormatter(
            '%(log_color)s[%(levelname).4s]%(reset)s %(blue)s%(threadName)s%(reset)s %(cyan)s%(name)s%(reset)s: %(message)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            },
            reset=True,
            style='%'
        ))
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
            file_handler.setLevel(logging.NOTSET)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to create log file handler for '{log_file}': {e}")

    _apply_module_levels(module_levels)


def parse_levels(levels_arg: Optional[str]) -> Optional[Dict[str, str]]:
    """Parses 'sched=DEBUG,res=INFO' into a mapping; malformed pairs are ignored."""
    if not levels_arg:
        return None
    levels = {}
    for pair in levels_arg.split(','):
        pair = pair.strip()
        if not pair or '=' not in pair:
            continue
        name, lvl = pair.split('=', 1)
        levels[name.strip()] = lvl.strip().upper()
    return levels


def _apply_module_levels(module_levels: Optional[Dict[str, str]]):
    """Apply per-module logger levels from mapping or env var CBUILD_LOG_LEVELS.

    Env var example: CBUILD_LOG_LEVELS="sched=DEBUG,containerbuilder.backends=INFO"
    """
    if module_levels is None:
        module_levels = parse_levels(os.environ.get(constants.LOG_LEVELS_ENV))
    if not module_levels:
        return

    for name, lvl_str in module_levels.items():
        lvl = logging.getLevelName(lvl_str.upper())
        if not isinstance(lvl, int):
            logging.warning(f"Ignoring unknown log level '{lvl_str}' for '{name}'")
            continue
        logging.getLogger(_normalize_module_name(name)).setLevel(lvl)


def _normalize_module_name(name: str) -> str:
    """Normalize provided module name with alias and auto-prefix.

    - If name is an alias, expand to full module path.
    - If name ends with '.*', treat it as base logger (strip the wildcard).
    - If name begins with a known top module, prefix 'containerbuilder.'.
    """
    if name in constants.LOG_ALIAS_MAP:
        return constants.LOG_ALIAS_MAP[name]
    if name.endswith('.*'):
        name = name[:-2]
    if not name.startswith('containerbuilder.'):
        first = name.split('.', 1)[0]
        if first in constants.KNOWN_TOP_MODULES:
            name = f'containerbuilder.{name}'
    return name
