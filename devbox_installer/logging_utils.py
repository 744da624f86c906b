from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO

DEFAULT_LOG_PATH = str(Path.home() / ".local/state/devbox-installer/devbox-installer.log")

# Success messages sit between INFO and WARNING.
OK = 25
logging.addLevelName(OK, "OK")

_TAGS = {
    logging.DEBUG: ("[DBG ]", "1;90"),
    logging.INFO: ("[INFO]", "1;34"),
    OK: ("[ OK ]", "1;32"),
    logging.WARNING: ("[WARN]", "1;33"),
    logging.ERROR: ("[ERR ]", "1;31"),
    logging.CRITICAL: ("[ERR ]", "1;31"),
}


def log_ok(logger: logging.Logger, msg: str, *args: object) -> None:
    logger.log(OK, msg, *args)


class ConsoleFormatter(logging.Formatter):
    """Render records as `[TAG] message`, coloured when writing to a TTY."""

    def __init__(self, *, color: bool) -> None:
        super().__init__("%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        tag, code = _TAGS.get(record.levelno, ("[????]", "0"))
        if self.color:
            tag = f"\033[{code}m{tag}\033[0m"
        return f"{tag} {super().format(record)}"


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("NO_COLOR") is None


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every command and decision goes to the log file at DEBUG. The console
    shows tagged messages at `level`; errors are written to stderr and
    everything else to stdout.

    If the requested log file cannot be created we fall back to a file in
    the working directory. Calling this again replaces the handlers that a
    previous call installed.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in getattr(root, "_devbox_handlers", []):
        root.removeHandler(h)
        h.close()

    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        chosen_path = log_path
    except OSError:
        fallback = str(Path.cwd() / "devbox-installer.log")
        file_handler = logging.FileHandler(fallback, encoding="utf-8")
        chosen_path = fallback
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        out = logging.StreamHandler(sys.stdout)
        out.setLevel(level)
        out.addFilter(_MaxLevelFilter(logging.WARNING))
        out.setFormatter(ConsoleFormatter(color=_is_tty(sys.stdout)))
        handlers.append(out)

        err = logging.StreamHandler(sys.stderr)
        err.setLevel(max(level, logging.ERROR))
        err.setFormatter(ConsoleFormatter(color=_is_tty(sys.stderr)))
        handlers.append(err)

    for h in handlers:
        root.addHandler(h)

    setattr(root, "_devbox_handlers", handlers)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
