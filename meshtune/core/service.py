"""Service layer used by CLI and the public API."""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence

from meshtune.core import accessor
from meshtune.core.errors import TunableResolutionError
from meshtune.core.model import DEFAULT_SYSFS_ROOT, Session, SettingResult, Tunable
from meshtune.core.paths import resolve
from meshtune.core.session import open_session
from meshtune.core.tunable_loader import load_tunables

DEFAULT_MESH_IFACE = "bat0"


class MeshService:
    def __init__(
        self,
        mesh_iface: str = DEFAULT_MESH_IFACE,
        *,
        session: Session | None = None,
        sysfs_root: str | None = None,
        privileged: Callable[[], bool] = accessor.is_root,
    ) -> None:
        loaded = load_tunables()
        self.tunables = loaded.tunables
        self.load_warnings = loaded.warnings
        self.mesh_iface = mesh_iface
        self.sysfs_root = sysfs_root or os.environ.get("MESHTUNE_SYSFS_ROOT", DEFAULT_SYSFS_ROOT)
        self.privileged = privileged
        self._session = session

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = open_session(self.mesh_iface, sysfs_root=self.sysfs_root)
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def list_tunables(self) -> list[Tunable]:
        return sorted(self.tunables.values(), key=lambda t: t.name)

    def resolve_tunable(self, name: str) -> Tunable:
        tunable = self.tunables.get(name)
        if tunable is not None:
            return tunable
        for candidate in self.tunables.values():
            if candidate.abbr == name:
                return candidate
        available = ", ".join(sorted(self.tunables.keys()))
        raise TunableResolutionError(f"Unknown tunable '{name}'. Available: {available}")

    def get(self, name: str) -> SettingResult:
        tunable = self.resolve_tunable(name)
        return accessor.handle_setting(self.session, tunable, (), privileged=self.privileged)

    def set(self, name: str, args: Sequence[str]) -> SettingResult:
        tunable = self.resolve_tunable(name)
        session = self.session
        path = resolve(session.mesh_iface, session.vid, session.sysfs_root)
        return accessor.set(session, tunable, path, args, privileged=self.privileged)

    def allowed_values(self, name: str) -> tuple[str, ...] | None:
        return self.resolve_tunable(name).params
