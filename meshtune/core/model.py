"""Core data models used across loader, accessor, service, and CLI."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

DEFAULT_SYSFS_ROOT = "/sys/class/net"


@dataclass(frozen=True)
class QueryResult:
    code: int
    value: str | None = None

    @property
    def ok(self) -> bool:
        return self.code >= 0


@dataclass(frozen=True)
class Session:
    """Per-process context passed explicitly to every operation.

    ``sock`` is ``None`` when the batadv generic netlink family is not
    available; the session then works in sysfs-only mode.
    """

    mesh_iface: str
    mesh_ifindex: int
    sock: Any | None = None
    family_id: int | None = None
    vid: int | None = None
    sysfs_root: str = DEFAULT_SYSFS_ROOT

    @property
    def has_netlink(self) -> bool:
        return self.sock is not None

    def close(self) -> None:
        if self.sock is not None:
            self.sock.close()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


NetlinkFunc = Callable[[Session, Sequence[str]], QueryResult]
ParseFunc = Callable[[Session, Sequence[str]], int]


@dataclass(frozen=True)
class NetlinkSpec:
    attribute: str
    type: str
    choices: dict[str, int] | None = None
    get_command: str = "BATADV_CMD_GET_MESH"
    set_command: str = "BATADV_CMD_SET_MESH"


@dataclass(frozen=True)
class Tunable:
    name: str
    abbr: str
    description: str = ""
    sysfs_name: str | None = None
    params: tuple[str, ...] | None = None
    vlan: bool = False
    netlink: NetlinkSpec | None = None
    netlink_get: NetlinkFunc | None = None
    netlink_set: NetlinkFunc | None = None
    parse: ParseFunc | None = None


@dataclass(frozen=True)
class SettingResult:
    tunable: Tunable
    value: str | None
    via: str
    path: str | None = None
