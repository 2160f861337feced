"""batman-adv generic netlink transport built on pyroute2."""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Callable
from typing import Any

from pyroute2.netlink import NLM_F_ACK, NLM_F_REQUEST, genlmsg
from pyroute2.netlink.exceptions import NetlinkError

from meshtune.core.model import QueryResult, Session

LOGGER = logging.getLogger(__name__)

BATADV_FAMILY_NAME = "batadv"

COMMANDS = {
    "BATADV_CMD_UNSPEC": 0,
    "BATADV_CMD_GET_MESH": 1,
    "BATADV_CMD_TP_METER": 2,
    "BATADV_CMD_TP_METER_CANCEL": 3,
    "BATADV_CMD_GET_ROUTING_ALGOS": 4,
    "BATADV_CMD_GET_HARDIF": 5,
    "BATADV_CMD_GET_TRANSTABLE_LOCAL": 6,
    "BATADV_CMD_GET_TRANSTABLE_GLOBAL": 7,
    "BATADV_CMD_GET_ORIGINATORS": 8,
    "BATADV_CMD_GET_NEIGHBORS": 9,
    "BATADV_CMD_GET_GATEWAYS": 10,
    "BATADV_CMD_GET_BLA_CLAIM": 11,
    "BATADV_CMD_GET_BLA_BACKBONE": 12,
    "BATADV_CMD_GET_DAT_CACHE": 13,
    "BATADV_CMD_GET_MCAST_FLAGS": 14,
    "BATADV_CMD_SET_MESH": 15,
    "BATADV_CMD_SET_HARDIF": 16,
    "BATADV_CMD_GET_VLAN": 17,
    "BATADV_CMD_SET_VLAN": 18,
}

VLAN_COMMANDS = {
    "BATADV_CMD_GET_MESH": "BATADV_CMD_GET_VLAN",
    "BATADV_CMD_SET_MESH": "BATADV_CMD_SET_VLAN",
}

Attrs = list[tuple[str, Any]]
PopulateFunc = Callable[[Attrs, Session], int]
ValidateFunc = Callable[[Any], "str | None"]
ErrorSink = Callable[[str], None]


class batadv_msg(genlmsg):
    prefix = "BATADV_ATTR_"
    nla_map = (
        ("BATADV_ATTR_UNSPEC", "none"),
        ("BATADV_ATTR_VERSION", "asciiz"),
        ("BATADV_ATTR_ALGO_NAME", "asciiz"),
        ("BATADV_ATTR_MESH_IFINDEX", "uint32"),
        ("BATADV_ATTR_MESH_IFNAME", "asciiz"),
        ("BATADV_ATTR_MESH_ADDRESS", "l2addr"),
        ("BATADV_ATTR_HARD_IFINDEX", "uint32"),
        ("BATADV_ATTR_HARD_IFNAME", "asciiz"),
        ("BATADV_ATTR_HARD_ADDRESS", "l2addr"),
        ("BATADV_ATTR_ORIG_ADDRESS", "l2addr"),
        ("BATADV_ATTR_TPMETER_RESULT", "uint8"),
        ("BATADV_ATTR_TPMETER_TEST_TIME", "uint32"),
        ("BATADV_ATTR_TPMETER_BYTES", "uint64"),
        ("BATADV_ATTR_TPMETER_COOKIE", "uint32"),
        ("BATADV_ATTR_PAD", "none"),
        ("BATADV_ATTR_ACTIVE", "flag"),
        ("BATADV_ATTR_TT_ADDRESS", "l2addr"),
        ("BATADV_ATTR_TT_TTVN", "uint8"),
        ("BATADV_ATTR_TT_LAST_TTVN", "uint8"),
        ("BATADV_ATTR_TT_CRC32", "uint32"),
        ("BATADV_ATTR_TT_VID", "uint16"),
        ("BATADV_ATTR_TT_FLAGS", "uint32"),
        ("BATADV_ATTR_FLAG_BEST", "flag"),
        ("BATADV_ATTR_LAST_SEEN_MSECS", "uint32"),
        ("BATADV_ATTR_NEIGH_ADDRESS", "l2addr"),
        ("BATADV_ATTR_TQ", "uint8"),
        ("BATADV_ATTR_THROUGHPUT", "uint32"),
        ("BATADV_ATTR_BANDWIDTH_UP", "uint32"),
        ("BATADV_ATTR_BANDWIDTH_DOWN", "uint32"),
        ("BATADV_ATTR_ROUTER", "l2addr"),
        ("BATADV_ATTR_BLA_OWN", "flag"),
        ("BATADV_ATTR_BLA_ADDRESS", "l2addr"),
        ("BATADV_ATTR_BLA_VID", "uint16"),
        ("BATADV_ATTR_BLA_BACKBONE", "l2addr"),
        ("BATADV_ATTR_BLA_CRC", "uint16"),
        ("BATADV_ATTR_DAT_CACHE_IP4ADDRESS", "ip4addr"),
        ("BATADV_ATTR_DAT_CACHE_HWADDRESS", "l2addr"),
        ("BATADV_ATTR_DAT_CACHE_VID", "uint16"),
        ("BATADV_ATTR_MCAST_FLAGS", "uint32"),
        ("BATADV_ATTR_MCAST_FLAGS_PRIV", "uint32"),
        ("BATADV_ATTR_VLANID", "uint16"),
        ("BATADV_ATTR_AGGREGATED_OGMS_ENABLED", "uint8"),
        ("BATADV_ATTR_AP_ISOLATION_ENABLED", "uint8"),
        ("BATADV_ATTR_ISOLATION_MARK", "uint32"),
        ("BATADV_ATTR_ISOLATION_MASK", "uint32"),
        ("BATADV_ATTR_BONDING_ENABLED", "uint8"),
        ("BATADV_ATTR_BRIDGE_LOOP_AVOIDANCE_ENABLED", "uint8"),
        ("BATADV_ATTR_DISTRIBUTED_ARP_TABLE_ENABLED", "uint8"),
        ("BATADV_ATTR_FRAGMENTATION_ENABLED", "uint8"),
        ("BATADV_ATTR_GW_BANDWIDTH_DOWN", "uint32"),
        ("BATADV_ATTR_GW_BANDWIDTH_UP", "uint32"),
        ("BATADV_ATTR_GW_MODE", "uint8"),
        ("BATADV_ATTR_GW_SEL_CLASS", "uint32"),
        ("BATADV_ATTR_HOP_PENALTY", "uint8"),
        ("BATADV_ATTR_LOG_LEVEL", "uint32"),
        ("BATADV_ATTR_MULTICAST_FORCEFLOOD_ENABLED", "uint8"),
        ("BATADV_ATTR_NETWORK_CODING_ENABLED", "uint8"),
        ("BATADV_ATTR_ORIG_INTERVAL", "uint32"),
        ("BATADV_ATTR_ELP_INTERVAL", "uint32"),
        ("BATADV_ATTR_THROUGHPUT_OVERRIDE", "uint32"),
        ("BATADV_ATTR_MULTICAST_FANOUT", "uint32"),
    )


ATTRIBUTES = frozenset(name for name, _ in batadv_msg.nla_map)


def query(
    session: Session,
    command: str,
    populate: PopulateFunc | None = None,
    validate: ValidateFunc | None = None,
    on_error: ErrorSink | None = None,
) -> QueryResult:
    """Run a single batadv request/response round trip.

    Returns a non-negative code on success and a negative errno otherwise.
    ``-EOPNOTSUPP`` means the kernel (or a missing socket) does not provide
    the command and is never reported to ``on_error``. When ``validate`` is
    given, the first reply it decodes becomes the result value; without a
    reply that decodes the call still yields ``-EOPNOTSUPP``.
    """
    if session.sock is None:
        return QueryResult(-errno.EOPNOTSUPP)

    report = on_error or LOGGER.error

    attrs: Attrs = [("BATADV_ATTR_MESH_IFINDEX", session.mesh_ifindex)]
    if populate is not None:
        ret = populate(attrs, session)
        if ret < 0:
            return QueryResult(-errno.EINVAL if ret == -errno.EINVAL else -errno.ENOMEM)

    try:
        msg = batadv_msg()
        msg["cmd"] = COMMANDS[command]
        msg["version"] = 1
        msg["attrs"] = attrs
    except MemoryError:
        return QueryResult(-errno.ENOMEM)

    try:
        replies = session.sock.nlm_request(
            msg,
            msg_type=session.family_id,
            msg_flags=NLM_F_REQUEST | NLM_F_ACK,
        )
    except NetlinkError as exc:
        if exc.code != errno.EOPNOTSUPP:
            report(f"Error received: {os.strerror(exc.code)}")
        return QueryResult(-exc.code)
    except OSError as exc:
        code = exc.errno or errno.EIO
        report(f"Error received: {os.strerror(code)}")
        return QueryResult(-code)
    finally:
        del msg

    if validate is None:
        return QueryResult(0)

    for reply in replies:
        value = validate(reply)
        if value is not None:
            return QueryResult(0, value)

    return QueryResult(-errno.EOPNOTSUPP)
