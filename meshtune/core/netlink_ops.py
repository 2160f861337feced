"""Netlink get/set functions and argument parsers for catalog tunables.

Each tunable in the catalog describes its batadv attribute and value type;
this module turns that description into the ``netlink_get``/``netlink_set``
callables and the optional ``parse`` step carried by a :class:`Tunable`.
"""

from __future__ import annotations

import errno
import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from meshtune.core.model import NetlinkFunc, NetlinkSpec, ParseFunc, QueryResult, Session
from meshtune.transports import netlink
from meshtune.transports.netlink import Attrs

LOGGER = logging.getLogger(__name__)

ENABLE_PARAMS = ("enable", "disable", "1", "0")
GW_MODES = {"off": 0, "client": 1, "server": 2}

_BOOL_VALUES = {"enable": 1, "1": 1, "disable": 0, "0": 0}
_INT_LIMITS = {"u8": 0xFF, "u16": 0xFFFF, "u32": 0xFFFFFFFF}
_BANDWIDTH_RE = re.compile(r"^(\d+(?:\.\d+)?)(mbit|kbit)?$", re.IGNORECASE)

VALUE_TYPES = ("bool", "u8", "u16", "u32", "enum", "mark", "gw_mode")


def _parse_int(text: str, limit: int) -> int:
    value = int(text, 0)
    if value < 0 or value > limit:
        raise ValueError(f"{text} out of range 0..{limit}")
    return value


def parse_mark(text: str) -> tuple[int, int]:
    """Parse ``mark[/mask]``; the mask defaults to all ones."""
    mark_text, _, mask_text = text.partition("/")
    mark = _parse_int(mark_text, 0xFFFFFFFF)
    mask = _parse_int(mask_text, 0xFFFFFFFF) if mask_text else 0xFFFFFFFF
    return mark, mask


def _parse_bandwidth_part(text: str) -> int:
    match = _BANDWIDTH_RE.match(text.strip())
    if not match:
        raise ValueError(f"invalid bandwidth '{text}'")
    number = float(match.group(1))
    unit = (match.group(2) or "mbit").lower()
    # kernel unit is 100 kbit/s
    if unit == "kbit":
        return int(number / 100)
    return int(number * 10)


def parse_bandwidth(text: str) -> tuple[int, int]:
    """Parse ``down[/up]`` gateway bandwidth; up defaults to a fifth of down."""
    down_text, _, up_text = text.partition("/")
    down = _parse_bandwidth_part(down_text)
    up = _parse_bandwidth_part(up_text) if up_text else down // 5
    if down == 0:
        raise ValueError("download bandwidth must be at least 100 kbit")
    return down, up


def _encode(spec: NetlinkSpec, args: Sequence[str]) -> Attrs:
    value = args[0]
    if spec.type == "bool":
        if value not in _BOOL_VALUES:
            raise ValueError(f"'{value}' is not a boolean setting")
        return [(spec.attribute, _BOOL_VALUES[value])]
    if spec.type in _INT_LIMITS:
        return [(spec.attribute, _parse_int(value, _INT_LIMITS[spec.type]))]
    if spec.type == "enum":
        choices = spec.choices or {}
        if value not in choices:
            raise ValueError(f"'{value}' is not a known choice")
        return [(spec.attribute, choices[value])]
    if spec.type == "mark":
        mark, mask = parse_mark(value)
        return [("BATADV_ATTR_ISOLATION_MARK", mark), ("BATADV_ATTR_ISOLATION_MASK", mask)]
    if spec.type == "gw_mode":
        if value not in GW_MODES:
            raise ValueError(f"'{value}' is not a gateway mode")
        attrs: Attrs = [("BATADV_ATTR_GW_MODE", GW_MODES[value])]
        if len(args) > 1 and value == "client":
            attrs.append(("BATADV_ATTR_GW_SEL_CLASS", _parse_int(args[1], 0xFFFFFFFF)))
        elif len(args) > 1 and value == "server":
            down, up = parse_bandwidth(args[1])
            attrs.append(("BATADV_ATTR_GW_BANDWIDTH_DOWN", down))
            attrs.append(("BATADV_ATTR_GW_BANDWIDTH_UP", up))
        return attrs
    raise ValueError(f"unsupported value type '{spec.type}'")


def _decode(spec: NetlinkSpec, msg: Any) -> str | None:
    if spec.type == "mark":
        mark = msg.get_attr("BATADV_ATTR_ISOLATION_MARK")
        mask = msg.get_attr("BATADV_ATTR_ISOLATION_MASK")
        if mark is None or mask is None:
            return None
        return f"0x{mark:08x}/0x{mask:08x}"

    raw = msg.get_attr(spec.attribute)
    if raw is None:
        return None
    if spec.type == "bool":
        return "enabled" if raw else "disabled"
    if spec.type == "enum":
        for name, number in (spec.choices or {}).items():
            if number == raw:
                return name
        return str(raw)
    if spec.type == "gw_mode":
        return _decode_gw_mode(msg, raw)
    return str(raw)


def _decode_gw_mode(msg: Any, mode: int) -> str:
    if mode == GW_MODES["client"]:
        sel_class = msg.get_attr("BATADV_ATTR_GW_SEL_CLASS")
        if sel_class is None:
            return "client"
        return f"client (selection class: {sel_class})"
    if mode == GW_MODES["server"]:
        down = msg.get_attr("BATADV_ATTR_GW_BANDWIDTH_DOWN")
        up = msg.get_attr("BATADV_ATTR_GW_BANDWIDTH_UP")
        if down is None or up is None:
            return "server"
        return f"server (announced bw: {down // 10}.{down % 10}/{up // 10}.{up % 10} MBit)"
    return "off"


def _vlan_populate(session: Session) -> Callable[[Attrs, Session], int] | None:
    if session.vid is None:
        return None

    def _populate(attrs: Attrs, _: Session) -> int:
        attrs.append(("BATADV_ATTR_VLANID", session.vid))
        return 0

    return _populate


def _command_for(session: Session, command: str, vlan: bool) -> str | None:
    if session.vid is None:
        return command
    if not vlan:
        return None
    return netlink.VLAN_COMMANDS.get(command, command)


def build_netlink_get(spec: NetlinkSpec, *, vlan: bool = False) -> NetlinkFunc:
    def _get(session: Session, args: Sequence[str] = ()) -> QueryResult:
        command = _command_for(session, spec.get_command, vlan)
        if command is None:
            return QueryResult(-errno.EOPNOTSUPP)
        return netlink.query(
            session,
            command,
            populate=_vlan_populate(session),
            validate=lambda msg: _decode(spec, msg),
            on_error=LOGGER.debug,
        )

    return _get


def build_netlink_set(spec: NetlinkSpec, *, vlan: bool = False) -> NetlinkFunc:
    def _set(session: Session, args: Sequence[str]) -> QueryResult:
        command = _command_for(session, spec.set_command, vlan)
        if command is None:
            return QueryResult(-errno.EOPNOTSUPP)

        vlan_populate = _vlan_populate(session)

        def _populate(attrs: Attrs, populate_session: Session) -> int:
            if vlan_populate is not None:
                vlan_populate(attrs, populate_session)
            try:
                attrs.extend(_encode(spec, args))
            except ValueError as exc:
                LOGGER.error("Error - %s", exc)
                return -errno.EINVAL
            return 0

        return netlink.query(session, command, populate=_populate, on_error=LOGGER.debug)

    return _set


def _parse_gw_mode(session: Session, args: Sequence[str]) -> int:
    mode = args[0]
    if mode not in GW_MODES or len(args) < 2:
        return 0
    try:
        if mode == "client":
            _parse_int(args[1], 0xFFFFFFFF)
        elif mode == "server":
            parse_bandwidth(args[1])
        else:
            LOGGER.error("Error - gw mode 'off' takes no further argument")
            return -errno.EINVAL
    except ValueError as exc:
        LOGGER.error("Error - %s", exc)
        return -errno.EINVAL
    return 0


def _parse_isolation_mark(session: Session, args: Sequence[str]) -> int:
    try:
        parse_mark(args[0])
    except ValueError:
        LOGGER.error("Error - invalid mark/mask '%s', expected <mark>[/<mask>]", args[0])
        return -errno.EINVAL
    return 0


PARSERS: dict[str, ParseFunc] = {
    "gw_mode": _parse_gw_mode,
    "isolation_mark": _parse_isolation_mark,
}
