"""Colored logging configuration for the MindOrbit CLI."""

import copy
import logging
import re
import sys

RESET = "\033[0m"
BOLD = "\033[1m"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

# One per subsystem; messages start with e.g. "[CAPTURE] ..."
PREFIX_COLORS = {
    "CAPTURE": "\033[97m",
    "STORE": "\033[94m",
    "LLM": "\033[93m",
    "CHAT": "\033[92m",
    "GRAPH": "\033[96m",
    "LAYOUT": "\033[36m",
    "WATCHER": "\033[96m",
    "DASHBOARD": "\033[95m",
    "STARTUP": "\033[94m",
}

_PREFIX_RE = re.compile(r"\[(" + "|".join(PREFIX_COLORS) + r")\]")

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "watchdog")


def _color_prefix(match: re.Match) -> str:
    name = match.group(1)
    return f"{PREFIX_COLORS[name]}{BOLD}[{name}]{RESET}"


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for levels and service prefixes."""

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers may see the same record
        record = copy.copy(record)
        color = LEVEL_COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname:<7}{RESET}"
        if isinstance(record.msg, str):
            record.msg = _PREFIX_RE.sub(_color_prefix, record.msg)
        return super().format(record)


def setup_colored_logging(verbose: bool = False) -> None:
    """Configure colored logging for the CLI.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ColoredFormatter(fmt="%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
