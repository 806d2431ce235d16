import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Formatting
FORMAT = "%(levelname)s\t[%(asctime)s]\t[%(filename)s:%(lineno)d]\t%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
formatter = logging.Formatter(FORMAT, DATE_FORMAT)

# Configure logger
logger = logging.getLogger()
logger.setLevel(logging.INFO)


# Function to set file handler
def set_log_file_handler(ll: logging.Logger, log_file: Path) -> None:
    # Create new log file every monday
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.TimedRotatingFileHandler(log_file, when="W0", backupCount=8)
    file_handler.setFormatter(formatter)
    ll.addHandler(file_handler)


# Function to log to stderr (stdout is reserved for progress messages)
def set_console_handler(ll: logging.Logger) -> None:
    console_handler = RichHandler(console=Console(stderr=True), show_path=False, log_time_format=DATE_FORMAT)
    console_handler.setLevel(logging.DEBUG)
    ll.addHandler(console_handler)
    ll.setLevel(logging.DEBUG)


# Function to keep warnings out of stderr when no handler is configured (reporting covers stdout)
def set_null_handler(ll: logging.Logger) -> None:
    if not any(isinstance(handler, logging.NullHandler) for handler in ll.handlers):
        ll.addHandler(logging.NullHandler())
