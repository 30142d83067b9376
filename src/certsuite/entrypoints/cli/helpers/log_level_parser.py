"""Parse ``NAME=LEVEL`` logger options.

Values may be repeated on the command line or given as one comma/space
separated string (as from an environment variable).
"""

import logging
import re

import click

_SEPARATORS = re.compile(r"[,\s]+")


def _split(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    if value is None:
        return []
    values = [value] if isinstance(value, str) else list(value)
    return [item for v in values for item in _SEPARATORS.split(v) if item]


def parse_log_level(
    ctx: click.Context | None,  # pylint: disable=unused-argument
    param: click.Parameter | None,  # pylint: disable=unused-argument
    value: str | list[str] | tuple[str, ...] | None,
) -> dict[str, int]:
    """Click callback turning ``NAME=LEVEL`` items into ``{name: level}``.

    Later items win over earlier ones for the same logger.

    Raises:
        click.BadParameter: If an item has no ``=`` or names an unknown level.
    """
    levels: dict[str, int] = {}
    for item in _split(value):
        name, sep, level_name = item.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME=LEVEL, got {item!r}")
        level = logging.getLevelName(level_name.strip().upper())
        if not isinstance(level, int):
            raise click.BadParameter(f"Invalid log level: {level_name}")
        levels[name.strip()] = level
    return levels
