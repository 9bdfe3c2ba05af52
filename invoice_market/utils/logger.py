"""
Logging for the invoice marketplace.

Every subsystem logs under the `invoice_market` namespace
(invoice_market.engine, invoice_market.sweep, ...). The console handler is
colored when stdout is a terminal and plain otherwise; a MarketConfig with
log_to_file set adds invoice_market.log under its log_dir.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import colorlog

if TYPE_CHECKING:
    from invoice_market.core.config import MarketConfig

LOGGER_NAMESPACE = "invoice_market"
LOG_FILE_NAME = "invoice_market.log"

CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rejections are warnings, sweep failures are errors
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

_configured = False


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        CONSOLE_FORMAT,
        datefmt=DATE_FORMAT,
        log_colors=LEVEL_COLORS,
        stream=sys.stdout,
    ))
    return handler


def _file_handler(level: int, log_dir: Path) -> logging.Handler:
    log_dir.mkdir(exist_ok=True, parents=True)
    handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_file: bool = False,
) -> logging.Logger:
    """
    (Re)configure the marketplace loggers.

    Replaces any handlers installed by an earlier call, so the CLI can
    apply the loaded configuration after modules have already logged.

    Returns:
        The namespace logger
    """
    global _configured

    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_console_handler(level))
    if log_to_file:
        root.addHandler(_file_handler(level, Path(log_dir) if log_dir else Path("logs")))

    _configured = True
    return root


def configure_logging(config: "MarketConfig", debug: bool = False) -> logging.Logger:
    """Apply a MarketConfig's logging settings; `debug` forces DEBUG level."""
    level = logging.DEBUG if debug else config.log_level
    return setup_logging(level=level, log_dir=config.log_dir, log_to_file=config.log_to_file)


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for a subsystem ('engine', 'wallet', 'sweep', ...).

    Installs the default console handler the first time a logger is
    requested without configure_logging having run.
    """
    if not _configured:
        setup_logging()
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
