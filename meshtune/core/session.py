"""Session bootstrap: mesh interface resolution and batadv family lookup."""

from __future__ import annotations

import logging

from pyroute2 import IPRoute
from pyroute2.netlink.exceptions import NetlinkError
from pyroute2.netlink.generic import GenericNetlinkSocket

from meshtune.core.errors import SessionError
from meshtune.core.model import DEFAULT_SYSFS_ROOT, Session
from meshtune.transports.netlink import BATADV_FAMILY_NAME, batadv_msg

LOGGER = logging.getLogger(__name__)


def _resolve_interface(name: str) -> tuple[str, int, int | None]:
    """Return ``(mesh_iface, mesh_ifindex, vid)`` for ``name``.

    A VLAN device on top of a mesh interface (``bat0.5``) resolves to its
    parent mesh interface and VLAN id.
    """
    with IPRoute() as ipr:
        indices = ipr.link_lookup(ifname=name)
        if not indices:
            raise SessionError(f"Error - interface {name} is not present or not a batman-adv interface")

        link = ipr.get_links(indices[0])[0]
        linkinfo = link.get_attr("IFLA_LINKINFO")
        kind = linkinfo.get_attr("IFLA_INFO_KIND") if linkinfo is not None else None
        if kind != "vlan":
            return name, indices[0], None

        vid = linkinfo.get_attr("IFLA_INFO_DATA").get_attr("IFLA_VLAN_ID")
        parent_index = link.get_attr("IFLA_LINK")
        parent = ipr.get_links(parent_index)[0]
        return parent.get_attr("IFLA_IFNAME"), parent_index, vid


def _open_genl() -> GenericNetlinkSocket | None:
    try:
        sock = GenericNetlinkSocket()
    except OSError as exc:
        LOGGER.debug("Could not open generic netlink socket: %s", exc)
        return None

    try:
        sock.bind(BATADV_FAMILY_NAME, batadv_msg)
    except (NetlinkError, OSError) as exc:
        LOGGER.debug("batadv netlink family unavailable, using sysfs only: %s", exc)
        sock.close()
        return None
    return sock


def open_session(mesh_iface: str = "bat0", *, sysfs_root: str = DEFAULT_SYSFS_ROOT) -> Session:
    """Build the session for ``mesh_iface``.

    The interface is resolved before the netlink family; without the batadv
    family the session carries no socket and every tunable goes through sysfs.
    """
    iface, ifindex, vid = _resolve_interface(mesh_iface)
    sock = _open_genl()
    return Session(
        mesh_iface=iface,
        mesh_ifindex=ifindex,
        sock=sock,
        family_id=sock.prid if sock is not None else None,
        vid=vid,
        sysfs_root=sysfs_root,
    )
