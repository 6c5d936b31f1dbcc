"""
Logging configuration for docpublisher.

Console output goes through Rich when it is installed, with an optional
plain-text file log alongside it.
"""

import logging
import sys
from pathlib import Path

try:
    import importlib.util

    RICH_AVAILABLE = importlib.util.find_spec("rich.logging") is not None
except Exception:
    RICH_AVAILABLE = False

ROOT_LOGGER_NAME = "docpublisher"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


class ConsoleFormatter(logging.Formatter):
    """Plain console format used when Rich is not available."""

    def __init__(self) -> None:
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname}: {self.formatTime(record)} - {record.getMessage()}"
        if record.levelno >= logging.ERROR and record.pathname:
            line = f"{record.levelname}: {self.formatTime(record)} - {Path(record.pathname).name}:{record.lineno} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return LEVEL_MAP.get(level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging for docpublisher.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int
        log_file: Optional file path to also write logs to
        console_enabled: Whether to log to the console (stderr)
        use_rich: Whether to use Rich's handler for console output

    Returns:
        The package root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    # Repeated calls (tests, CLI re-entry) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich and RICH_AVAILABLE:
            from rich.console import Console
            from rich.logging import RichHandler

            console_handler: logging.Handler = RichHandler(
                level=level_int,
                console=Console(stderr=True),
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: dict, project_dir: Path | None = None, verbose: bool = False) -> logging.Logger:
    """
    Setup logging from the ``logging`` section of the configuration.

    Recognized keys: ``level``, ``file``, ``console_type`` (``rich`` or ``plain``).
    A relative log file is resolved against ``project_dir``.
    """
    logging_config = config.get("logging", {}) or {}

    level = "DEBUG" if verbose else logging_config.get("level", logging.INFO)
    log_file = logging_config.get("file")
    if log_file and project_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=level,
        log_file=log_file,
        use_rich=logging_config.get("console_type", "rich") == "rich",
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger under the docpublisher namespace.

    Args:
        name: Logger name; prefixed with ``docpublisher.`` when outside the namespace

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
