# log_helper.py
from __future__ import annotations
import logging
import logging.handlers as _handlers
import os
import sys
import threading
from typing import Any, Dict, Optional

from colorama import Fore, Back, Style, init as colorama_init

# ---- VERBOSE level (below DEBUG) ----
VERBOSE_LEVEL = 5
VERBOSE_NAME = "VERBOSE"

class VerboseLogger(logging.Logger):
    def verbose(self, msg: str, *args, **kwargs) -> None:
        if self.isEnabledFor(VERBOSE_LEVEL):
            self._log(VERBOSE_LEVEL, msg, args, **kwargs)

def _install_verbose_logger_class() -> None:
    if logging.getLevelName(VERBOSE_LEVEL) != VERBOSE_NAME:
        logging.addLevelName(VERBOSE_LEVEL, VERBOSE_NAME)
    if logging.getLoggerClass() is not VerboseLogger:
        logging.setLoggerClass(VerboseLogger)

def _level(value: Any) -> int:
    if isinstance(value, int):
        return value
    name = str(value).strip().upper()
    if name == VERBOSE_NAME:
        return VERBOSE_LEVEL
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING

# ---- per-logger file routing: logs/{name}.log ----
class RouterHandler(logging.Handler):
    def __init__(self, fmt: str, datefmt: str, log_dir: str,
                 max_bytes: int, backup_count: int) -> None:
        super().__init__(level=VERBOSE_LEVEL)
        self.formatter_ = logging.Formatter(fmt, datefmt)
        self.log_dir = log_dir
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self._handlers: Dict[str, logging.Handler] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, logger_name: str) -> logging.Handler:
        with self._lock:
            h = self._handlers.get(logger_name)
            if h:
                return h
            os.makedirs(self.log_dir, exist_ok=True)
            h = _handlers.RotatingFileHandler(
                os.path.join(self.log_dir, f"{logger_name}.log"),
                maxBytes=self.max_bytes, backupCount=self.backup_count,
                encoding="utf-8", delay=True)
            h.setFormatter(self.formatter_)
            self._handlers[logger_name] = h
            return h

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._get_or_create(record.name).emit(record)
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        with self._lock:
            for h in self._handlers.values():
                h.close()
            self._handlers.clear()
        super().close()

# ---- colored console ----
colorama_init()

class ColorFormatter(logging.Formatter):
    LEVEL_COLORS = {
        VERBOSE_LEVEL: Style.DIM + Fore.WHITE,
        logging.DEBUG: Fore.WHITE,
        logging.INFO: Fore.BLUE,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Back.RED + Fore.WHITE,
    }
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return color + base + Style.RESET_ALL if color else base

# ---- public helper ----
class LogHelper:
    """Usage:
        logger = LogHelper.get_logger("graphquery.compiler")
        logger.verbose("compiled: %s", text)

    Handlers hang off the `root` logger of the helper (default "graphquery");
    child loggers propagate to it. `GRAPHQUERY_LOG_LEVEL` and
    `GRAPHQUERY_LOG_DIR` seed the defaults.
    """
    _defaults: Dict[str, Any] = dict(
        root="graphquery",
        level=os.environ.get("GRAPHQUERY_LOG_LEVEL", "WARNING"),
        log_dir=os.environ.get("GRAPHQUERY_LOG_DIR") or None,
        max_bytes=5 * 1024 * 1024,
        backup_count=10,
        fmt="[%(asctime)s] [%(threadName)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        console=True,
    )
    _lock = threading.Lock()
    _installed: Optional[logging.Logger] = None

    @classmethod
    def configure(cls, **kwargs) -> None:
        """Change defaults; handlers are rebuilt on the next get_logger()."""
        with cls._lock:
            cls._defaults.update(kwargs)
            cls._teardown()

    @classmethod
    def get_logger(cls, name: str) -> VerboseLogger:
        with cls._lock:
            if cls._installed is None:
                cls._setup()
        logger = logging.getLogger(name)
        if not isinstance(logger, VerboseLogger):
            logger.__class__ = VerboseLogger  # created before the class was installed
        return logger  # type: ignore[return-value]

    @classmethod
    def _setup(cls) -> None:
        _install_verbose_logger_class()
        d = cls._defaults
        root = logging.getLogger(d["root"])
        if not isinstance(root, VerboseLogger):
            root.__class__ = VerboseLogger
        root.setLevel(_level(d["level"]))
        if d["console"]:
            ch = logging.StreamHandler(sys.stderr)
            ch.setFormatter(ColorFormatter(d["fmt"], d["datefmt"]))
            root.addHandler(ch)
        if d["log_dir"]:
            root.addHandler(RouterHandler(d["fmt"], d["datefmt"], d["log_dir"],
                                          d["max_bytes"], d["backup_count"]))
        cls._installed = root

    @classmethod
    def _teardown(cls) -> None:
        root = cls._installed
        if root is None:
            return
        for h in list(root.handlers):
            if isinstance(h, (RouterHandler, logging.StreamHandler)):
                root.removeHandler(h)
                h.close()
        cls._installed = None
