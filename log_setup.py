"""Logging configuration for hosts and the CLI.

Modules only ever call ``logging.getLogger(__name__)``; handlers are installed
here, once, by whoever embeds the engines. Verbose traces (every scanner match,
every condition result) go to the separate ``detail`` logger, which stays
silent unless ``[LOGGING] log_matches`` or ``log_conditions`` is enabled.
"""

from __future__ import annotations

import configparser
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DETAIL_LOGGER_NAME = "detail"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class SafeEncodingStreamHandler(logging.StreamHandler):
    def emit(self, record):
        """Write log lines without failing on consoles with narrow encodings."""
        try:
            msg = self.format(record)
            stream = self.stream
            stream.write(msg.encode("utf-8", errors="replace").decode("utf-8", errors="ignore") + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


class SafeRotatingFileHandler(RotatingFileHandler):
    """Rotating handler that tolerates Windows file locks (e.g. OneDrive/AV)."""

    def rotate(self, source: str, dest: str) -> None:
        try:
            super().rotate(source, dest)
            return
        except PermissionError as exc:
            if getattr(exc, "winerror", None) != 32:
                raise
        # copy and truncate instead of renaming the locked file
        try:
            if os.path.exists(source):
                shutil.copy2(source, dest)
            with open(source, "w", encoding=self.encoding or "utf-8") as fh:
                fh.truncate(0)
        except OSError:
            return


def _reset_handlers(target: logging.Logger) -> None:
    for handler in target.handlers[:]:
        target.removeHandler(handler)
        try:
            handler.close()
        except Exception:
            pass


def _level(name: str, fallback: int) -> int:
    return logging._nameToLevel.get(name.strip().upper(), fallback)


def configure_logging(
    cfg: Optional[configparser.ConfigParser] = None,
    *,
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Install console, optional file and detail handlers on the root logger.

    ``level`` and ``log_file`` override the ``[LOGGING]`` section, which is
    what the CLI's ``-v`` and ``--log-file`` flags use. Returns the detail
    logger.
    """
    if cfg is None:
        cfg = configparser.ConfigParser()

    console_level = level
    if console_level is None:
        console_level = _level(cfg.get("LOGGING", "console_level", fallback="INFO"), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    _reset_handlers(root_logger)

    console = SafeEncodingStreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(console_level)
    root_logger.addHandler(console)
    root_logger.setLevel(console_level)

    detail_logger = logging.getLogger(DETAIL_LOGGER_NAME)
    _reset_handlers(detail_logger)
    detail_handler = SafeEncodingStreamHandler(sys.stderr)
    detail_handler.setFormatter(formatter)
    detail_logger.addHandler(detail_handler)
    detail_logger.propagate = False

    detail_enabled = any(
        cfg.getint("LOGGING", option, fallback=0) == 1
        for option in ("log_matches", "log_conditions")
    )
    detail_level = logging.INFO if detail_enabled else logging.WARNING
    detail_logger.setLevel(detail_level)
    detail_handler.setLevel(detail_level)

    file_path = log_file
    if file_path is None and cfg.getint("LOGGING", "file_enabled", fallback=0) == 1:
        raw_path = cfg.get("LOGGING", "file_path", fallback="").strip()
        file_path = Path(raw_path) if raw_path else None

    if file_path is not None:
        try:
            if file_path.parent and not file_path.parent.exists():
                file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = SafeRotatingFileHandler(
                str(file_path),
                maxBytes=max(0, cfg.getint("LOGGING", "file_max_bytes", fallback=1048576)),
                backupCount=max(0, cfg.getint("LOGGING", "file_backup_count", fallback=5)),
                encoding="utf-8",
                delay=True,
            )
            file_handler.setLevel(
                _level(cfg.get("LOGGING", "file_level", fallback="INFO"), console_level)
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            detail_logger.addHandler(file_handler)
        except (OSError, ValueError) as exc:
            logger.warning("File logging could not be initialised: %s", exc)

    return detail_logger
