"""
Logging setup for PHP Sanitizer.

Everything logs under the ``php_sanitizer`` namespace. The command line
installs a rich handler on stderr so that stdout stays free for results
(``--json`` output in particular).
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "php_sanitizer"

# Config verbosity -> level of the php_sanitizer logger
VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}


def _verbosity(verbose: bool, quiet: bool) -> str:
    if quiet:
        return "quiet"
    if verbose:
        return "verbose"
    return "normal"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Install the rich stderr handler and set the php_sanitizer log level.

    Args:
        verbose: Log DEBUG messages, with source paths and traceback locals
        quiet: Log errors only
        log_file: Also append plain-text records to this file

    Returns:
        The php_sanitizer logger
    """
    verbosity = _verbosity(verbose, quiet)
    level = VERBOSITY_LEVELS[verbosity]

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            # Messages carry file paths and PHP names, not rich markup
            markup=False,
            show_time=True,
            show_path=verbose,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=handlers)
    return apply_verbosity(verbosity)


def apply_verbosity(verbosity: str) -> logging.Logger:
    """Set the php_sanitizer log level from a configured verbosity.

    Lets ``verbosity`` from a config file or ``PHP_SANITIZER_VERBOSITY``
    take effect after the command line flags have been read.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(VERBOSITY_LEVELS.get(verbosity, logging.WARNING))
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger below the php_sanitizer namespace.

    Args:
        name: Module name, usually ``__name__``. Names outside the
              namespace are prefixed with ``php_sanitizer.``

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
