"""sysfs attribute file transport."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from meshtune.core.errors import SysfsError

LOGGER = logging.getLogger(__name__)

NOT_COMPILED_HINT = (
    "The option you called seems not to be compiled into your batman-adv kernel module.\n"
    "Consult the README if you wish to learn more about compiling options into batman-adv."
)


def read_value(directory: str, name: str) -> str:
    path = Path(directory) / name
    LOGGER.debug("reading %s", path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SysfsError(f"Error - can't open file '{path}': {exc.strerror}\n{NOT_COMPILED_HINT}") from exc
    except OSError as exc:
        raise SysfsError(f"Error - can't open file '{path}': {exc.strerror or exc}") from exc
    return content.rstrip("\n")


def write_value(directory: str, name: str, value: str, value2: str | None = None) -> str:
    """Write one or two space-joined tokens to an existing attribute file."""
    path = Path(directory) / name
    line = value if value2 is None else f"{value} {value2}"
    LOGGER.debug("writing %r to %s", line, path)
    try:
        # attributes are never created
        fd = os.open(path, os.O_WRONLY | os.O_TRUNC)
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(line)
    except FileNotFoundError as exc:
        raise SysfsError(f"Error - can't write to file '{path}': {exc.strerror}\n{NOT_COMPILED_HINT}") from exc
    except OSError as exc:
        raise SysfsError(f"Error - can't write to file '{path}': {exc.strerror or exc}") from exc
    return line
