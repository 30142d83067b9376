"""Logging setup for the certsuite CLI.

Console output goes through Rich. A "flight recorder" keeps recent records
at DEBUG granularity in memory and writes them to a file only when something
goes wrong, so a failed certification run can be diagnosed after the fact
without a noisy console. Records from other libraries get a short
``[library]`` prefix on the console.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from collections.abc import Mapping
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TypeAlias

import cryptography
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from logging import Logger

# pylint: disable=too-few-public-methods

PROJECT_PREFIX = "certsuite"

ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]

_RECORDER_FORMAT = (
    "[%(asctime)s] [%(process)d:%(threadName)s] %(levelname)s "
    "%(name)s:%(lineno)d: %(message)s"
)


class ThirdPartyPrefixFilter(logging.Filter):
    """Set ``record.prefix`` to ``[top-level-package]`` for foreign loggers.

    Project records get an empty prefix. Never drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(PROJECT_PREFIX):
            record.prefix = ""
        else:
            record.prefix = f"[{record.name.partition('.')[0]}]"
        return True


def config_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Return a Rich handler writing to stderr.

    Args:
        level: Minimum console level; forced to DEBUG in debug mode.
        debug_mode: Show timestamps, logger names and source paths.
        color: False disables color, mirroring click-extra's ``--no-color``.
    """
    color_system: ColorSystem | None = "auto" if color else None
    handler = RichHandler(
        level=logging.DEBUG if debug_mode else level,
        console=Console(color_system=color_system, stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )
    if debug_mode:
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(prefix)s %(message)s"))
        handler.addFilter(ThirdPartyPrefixFilter())
    return handler


def config_flight_recorder(
    path: Path,
    capacity: int = 2000,
    flush_level: int = logging.WARNING,
    flush_on_close: bool = False,
) -> MemoryHandler:
    """Return a memory buffer that dumps to ``path`` on ``flush_level``.

    Up to ``capacity`` records are kept. With ``flush_on_close`` the buffer is
    also written when logging shuts down, even if nothing went wrong.
    """
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_RECORDER_FORMAT))
    return MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=file_handler,
        flushOnClose=flush_on_close,
    )


def configure_logging(
    handlers: list[logging.Handler], logger_levels: Mapping[str, int]
) -> None:
    """Install ``handlers`` on the root logger and apply per-logger levels.

    The root logger passes everything through; handlers do the filtering.
    """
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name, level in logger_levels.items():
        logging.getLogger(name).setLevel(level)


def log_startup(  # pylint: disable=too-many-arguments
    logger: Logger,
    *,
    app_version: str,
    level: int,
    handlers: list[logging.Handler],
    log_path: Path | None,
    flight_recorder: bool,
    flight_capacity: int | None,
    force_flush_fr: bool,
    logger_levels: Mapping[str, int],
) -> None:
    """Log a one-line summary at INFO and environment diagnostics at DEBUG.

    The DEBUG lines (interpreter, platform, pid, cwd, cryptography version,
    handler types, flight-recorder settings and per-logger overrides) land in
    the flight recorder, which is where they are most useful.
    """
    logger.info(
        "CERTSUITE %s: console=%s, flight-recorder=%s",
        app_version,
        logging.getLevelName(level),
        "ON" if flight_recorder else "OFF",
    )
    logger.debug("Python: %s", sys.version.split()[0])
    logger.debug("Platform: %s %s", platform.system(), platform.release())
    logger.debug("PID: %s", os.getpid())
    logger.debug("CWD: %s", Path.cwd())
    logger.debug("cryptography: %s", cryptography.__version__)
    logger.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if flight_recorder:
        logger.debug(
            "Flight recorder: path=%s, capacity=%s, flush_on_close=%s",
            log_path or "<none>",
            flight_capacity,
            force_flush_fr,
        )
    logger.debug(
        "Per-logger overrides: %s",
        {name: logging.getLevelName(lvl) for name, lvl in logger_levels.items()}
        or "<none>",
    )
