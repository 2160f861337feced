"""Dual-path tunable access: batadv netlink first, sysfs as fallback.

Each invocation walks at most two strategies, in order:

* ``NetlinkStrategy`` when the tunable has a netlink function for the
  requested direction. A non-negative result ends the invocation, a negative
  result other than ``-EOPNOTSUPP`` fails it, ``-EOPNOTSUPP`` falls through.
* ``SysfsStrategy`` when the tunable names a sysfs attribute. Its outcome is
  final.

Nothing is retried. If neither strategy applies, the invocation fails.
"""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from meshtune.core.errors import (
    InvalidValueError,
    PermissionDeniedError,
    SettingFailedError,
    TransportError,
)
from meshtune.core.model import NetlinkFunc, Session, SettingResult, Tunable
from meshtune.core.paths import resolve
from meshtune.transports import sysfs

LOGGER = logging.getLogger(__name__)


def is_root() -> bool:
    return os.geteuid() == 0


@dataclass(frozen=True)
class NetlinkStrategy:
    func: NetlinkFunc

    def run(self, session: Session, tunable: Tunable, args: Sequence[str]) -> SettingResult | None:
        result = self.func(session, args)
        if result.code == -errno.EOPNOTSUPP:
            LOGGER.debug("netlink does not support %s, falling back to sysfs", tunable.name)
            return None
        if result.code < 0:
            raise TransportError(
                f"netlink request for '{tunable.name}' failed: {os.strerror(-result.code)}",
                result.code,
            )
        value = result.value if result.value is not None else (args[0] if args else None)
        return SettingResult(tunable=tunable, value=value, via="netlink")


@dataclass(frozen=True)
class SysfsStrategy:
    name: str
    path: str

    def read(self, tunable: Tunable) -> SettingResult:
        value = sysfs.read_value(self.path, self.name)
        return SettingResult(tunable=tunable, value=value, via="sysfs", path=os.path.join(self.path, self.name))

    def write(self, tunable: Tunable, args: Sequence[str]) -> SettingResult:
        value2 = args[1] if len(args) > 1 else None
        sysfs.write_value(self.path, self.name, args[0], value2)
        return SettingResult(tunable=tunable, value=args[0], via="sysfs", path=os.path.join(self.path, self.name))


def _strategies(
    tunable: Tunable,
    func: NetlinkFunc | None,
    path: str,
) -> tuple[NetlinkStrategy | None, SysfsStrategy | None]:
    netlink_strategy = NetlinkStrategy(func) if func is not None else None
    sysfs_strategy = SysfsStrategy(tunable.sysfs_name, path) if tunable.sysfs_name else None
    return netlink_strategy, sysfs_strategy


def get(session: Session, tunable: Tunable, path: str) -> SettingResult:
    """Read the current value of ``tunable``."""
    netlink_strategy, sysfs_strategy = _strategies(tunable, tunable.netlink_get, path)

    if netlink_strategy is not None:
        outcome = netlink_strategy.run(session, tunable, ())
        if outcome is not None:
            return outcome

    if sysfs_strategy is None:
        raise SettingFailedError(f"'{tunable.name}' cannot be read on {session.mesh_iface}")

    return sysfs_strategy.read(tunable)


def check_allowed(tunable: Tunable, value: str) -> None:
    if tunable.params is None:
        return
    if value not in tunable.params:
        raise InvalidValueError(value, tunable.params)


def set(
    session: Session,
    tunable: Tunable,
    path: str,
    args: Sequence[str],
    *,
    privileged: Callable[[], bool] = is_root,
) -> SettingResult:
    """Write ``args`` (a value and an optional second token) to ``tunable``."""
    if not args:
        raise SettingFailedError(f"no value supplied for '{tunable.name}'")

    if not privileged():
        raise PermissionDeniedError("you must be root to change settings")

    if tunable.parse is not None and tunable.parse(session, args) < 0:
        raise SettingFailedError(f"invalid arguments for '{tunable.name}': {' '.join(args)}")

    check_allowed(tunable, args[0])

    netlink_strategy, sysfs_strategy = _strategies(tunable, tunable.netlink_set, path)

    if netlink_strategy is not None:
        outcome = netlink_strategy.run(session, tunable, args)
        if outcome is not None:
            return outcome

    if sysfs_strategy is None:
        raise SettingFailedError(f"'{tunable.name}' cannot be changed on {session.mesh_iface}")

    return sysfs_strategy.write(tunable, args)


def handle_setting(
    session: Session,
    tunable: Tunable,
    args: Sequence[str] = (),
    *,
    privileged: Callable[[], bool] = is_root,
) -> SettingResult:
    """Read ``tunable`` when ``args`` is empty, otherwise write it."""
    path = resolve(session.mesh_iface, session.vid, session.sysfs_root)
    if not args:
        return get(session, tunable, path)
    return set(session, tunable, path, args, privileged=privileged)
