"""sysfs path resolution for mesh interfaces and their VLANs."""

from __future__ import annotations

from meshtune.core.model import DEFAULT_SYSFS_ROOT

PATH_BUFF_LEN = 400

SYS_BATIF_PATH_FMT = "{root}/{iface}/mesh/"
SYS_VLAN_PATH_FMT = "{root}/{iface}/mesh/vlan{vid}/"


def resolve(mesh_iface: str, vid: int | None = None, root: str = DEFAULT_SYSFS_ROOT) -> str:
    root = root.rstrip("/")
    if vid is not None and vid >= 0:
        path = SYS_VLAN_PATH_FMT.format(root=root, iface=mesh_iface, vid=vid)
    else:
        path = SYS_BATIF_PATH_FMT.format(root=root, iface=mesh_iface)
    # overlong paths are cut; lookups below them fail with ENOENT
    return path[: PATH_BUFF_LEN - 1]
