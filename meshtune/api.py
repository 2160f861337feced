"""Stable public API for building tooling on top of meshtune.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from meshtune.core.accessor import is_root
from meshtune.core.errors import (
    InvalidValueError,
    MeshtuneError,
    PermissionDeniedError,
    SessionError,
    SettingFailedError,
    SysfsError,
    TransportError,
    TunableLoadError,
    TunableResolutionError,
    TunableValidationError,
)
from meshtune.core.model import NetlinkSpec, QueryResult, Session, SettingResult, Tunable
from meshtune.core.service import DEFAULT_MESH_IFACE, MeshService
from meshtune.core.session import open_session

__all__ = [
    "MeshtuneError",
    "InvalidValueError",
    "PermissionDeniedError",
    "SessionError",
    "SettingFailedError",
    "SysfsError",
    "TransportError",
    "TunableLoadError",
    "TunableResolutionError",
    "TunableValidationError",
    "NetlinkSpec",
    "QueryResult",
    "Session",
    "SettingResult",
    "Tunable",
    "open_session",
    "Client",
]


class Client:
    """Public client for reading and writing batman-adv tunables.

    A `Client` wraps catalog loading, session bootstrap and the netlink/sysfs
    accessor behind a stable API intended for third-party tools. Pass an
    already built `session` to skip interface resolution.
    """

    def __init__(
        self,
        mesh_iface: str = DEFAULT_MESH_IFACE,
        *,
        session: Session | None = None,
        sysfs_root: str | None = None,
        privileged: Callable[[], bool] = is_root,
    ) -> None:
        self._service = MeshService(
            mesh_iface,
            session=session,
            sysfs_root=sysfs_root,
            privileged=privileged,
        )

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_tunables(self) -> list[Tunable]:
        return self._service.list_tunables()

    def get_allowed_values(self, name: str) -> tuple[str, ...] | None:
        return self._service.allowed_values(name)

    def get(self, name: str) -> SettingResult:
        return self._service.get(name)

    def set(self, name: str, value: str, *extra: str) -> SettingResult:
        args: Sequence[str] = (value, *extra)
        return self._service.set(name, args)

    def close(self) -> None:
        self._service.close()
