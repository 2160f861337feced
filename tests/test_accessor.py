from __future__ import annotations

import errno
from pathlib import Path

import pytest

from meshtune.core import accessor
from meshtune.core.errors import (
    InvalidValueError,
    PermissionDeniedError,
    SettingFailedError,
    SysfsError,
    TransportError,
)
from meshtune.core.model import QueryResult, Session, Tunable
from meshtune.core.tunable_loader import load_tunables


class FakeNetlink:
    def __init__(self, code: int, value: str | None = None) -> None:
        self.result = QueryResult(code, value)
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, session: Session, args=()) -> QueryResult:
        self.calls.append(tuple(args))
        return self.result


def _session(tmp_path: Path, vid: int | None = None) -> Session:
    return Session(mesh_iface="bat0", mesh_ifindex=7, sysfs_root=str(tmp_path), vid=vid)


def _mesh_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bat0" / "mesh"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _root() -> bool:
    return True


def _nobody() -> bool:
    return False


def test_get_without_netlink_reads_sysfs(tmp_path: Path) -> None:
    (_mesh_dir(tmp_path) / "hop_penalty").write_text("30\n", encoding="utf-8")
    tunable = Tunable(name="hop_penalty", abbr="hp", sysfs_name="hop_penalty")

    result = accessor.handle_setting(_session(tmp_path), tunable)
    assert result.value == "30"
    assert result.via == "sysfs"
    assert result.path == str(tmp_path / "bat0" / "mesh" / "hop_penalty")


def test_get_without_any_path_fails(tmp_path: Path) -> None:
    tunable = Tunable(name="nothing", abbr="n")
    with pytest.raises(SettingFailedError):
        accessor.handle_setting(_session(tmp_path), tunable)


def test_netlink_success_never_touches_sysfs(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "bonding"
    attr.write_text("disabled\n", encoding="utf-8")
    netlink_get = FakeNetlink(0, "enabled")
    netlink_set = FakeNetlink(0)
    tunable = Tunable(
        name="bonding",
        abbr="b",
        sysfs_name="bonding",
        params=("enable", "disable", "1", "0"),
        netlink_get=netlink_get,
        netlink_set=netlink_set,
    )

    read = accessor.handle_setting(_session(tmp_path), tunable)
    written = accessor.handle_setting(_session(tmp_path), tunable, ["enable"], privileged=_root)

    assert read.value == "enabled"
    assert read.via == "netlink"
    assert written.via == "netlink"
    assert netlink_set.calls == [("enable",)]
    assert attr.read_text(encoding="utf-8") == "disabled\n"


def test_not_supported_falls_back_to_sysfs(tmp_path: Path) -> None:
    (_mesh_dir(tmp_path) / "bonding").write_text("enabled\n", encoding="utf-8")
    tunable = Tunable(
        name="bonding",
        abbr="b",
        sysfs_name="bonding",
        netlink_get=FakeNetlink(-errno.EOPNOTSUPP),
    )
    result = accessor.handle_setting(_session(tmp_path), tunable)
    assert result.value == "enabled"
    assert result.via == "sysfs"


def test_fallback_outcome_is_final(tmp_path: Path) -> None:
    tunable = Tunable(
        name="bonding",
        abbr="b",
        sysfs_name="bonding",
        netlink_get=FakeNetlink(-errno.EOPNOTSUPP),
    )
    with pytest.raises(SysfsError):
        accessor.handle_setting(_session(tmp_path), tunable)


def test_transport_error_does_not_fall_back(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "bonding"
    attr.write_text("disabled\n", encoding="utf-8")
    tunable = Tunable(
        name="bonding",
        abbr="b",
        sysfs_name="bonding",
        netlink_set=FakeNetlink(-errno.EPERM),
    )
    with pytest.raises(TransportError) as exc:
        accessor.handle_setting(_session(tmp_path), tunable, ["enable"], privileged=_root)
    assert exc.value.code == -errno.EPERM
    assert attr.read_text(encoding="utf-8") == "disabled\n"


def test_invalid_value_rejected_before_any_io(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "gw_mode"
    attr.write_text("off\n", encoding="utf-8")
    netlink_set = FakeNetlink(-errno.EOPNOTSUPP)
    tunable = Tunable(
        name="gw_mode",
        abbr="gw",
        sysfs_name="gw_mode",
        params=("client", "server", "off"),
        netlink_set=netlink_set,
    )

    with pytest.raises(InvalidValueError) as exc:
        accessor.handle_setting(_session(tmp_path), tunable, ["bogus"], privileged=_root)

    assert exc.value.allowed == ("client", "server", "off")
    assert netlink_set.calls == []
    assert attr.read_text(encoding="utf-8") == "off\n"


def test_values_are_case_sensitive(tmp_path: Path) -> None:
    tunable = Tunable(name="gw_mode", abbr="gw", sysfs_name="gw_mode", params=("client", "server", "off"))
    with pytest.raises(InvalidValueError):
        accessor.handle_setting(_session(tmp_path), tunable, ["Server"], privileged=_root)


def test_gw_mode_server_written_through_fallback(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "gw_mode"
    attr.write_text("off\n", encoding="utf-8")
    tunable = Tunable(
        name="gw_mode",
        abbr="gw",
        sysfs_name="gw_mode",
        params=("client", "server", "off"),
        netlink_set=FakeNetlink(-errno.EOPNOTSUPP),
    )

    result = accessor.handle_setting(_session(tmp_path), tunable, ["server"], privileged=_root)
    assert result.via == "sysfs"
    assert attr.read_text(encoding="utf-8") == "server"


def test_second_token_is_written(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "gw_mode"
    attr.write_text("off\n", encoding="utf-8")
    tunable = Tunable(name="gw_mode", abbr="gw", sysfs_name="gw_mode")
    accessor.handle_setting(_session(tmp_path), tunable, ["server", "10mbit"], privileged=_root)
    assert attr.read_text(encoding="utf-8") == "server 10mbit"


def test_write_requires_privilege_but_read_does_not(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "orig_interval"
    attr.write_text("1000\n", encoding="utf-8")
    netlink_set = FakeNetlink(0)
    tunable = Tunable(name="orig_interval", abbr="it", sysfs_name="orig_interval", netlink_set=netlink_set)

    with pytest.raises(PermissionDeniedError):
        accessor.handle_setting(_session(tmp_path), tunable, ["500"], privileged=_nobody)
    assert netlink_set.calls == []
    assert attr.read_text(encoding="utf-8") == "1000\n"

    assert accessor.handle_setting(_session(tmp_path), tunable, privileged=_nobody).value == "1000"


def test_parse_failure_aborts_without_fallback(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "isolation_mark"
    attr.write_text("0x00000000/0x00000000\n", encoding="utf-8")
    netlink_set = FakeNetlink(-errno.EOPNOTSUPP)
    tunable = Tunable(
        name="isolation_mark",
        abbr="mark",
        sysfs_name="isolation_mark",
        netlink_set=netlink_set,
        parse=lambda session, args: -errno.EINVAL,
    )

    with pytest.raises(SettingFailedError):
        accessor.handle_setting(_session(tmp_path), tunable, ["garbage"], privileged=_root)
    assert netlink_set.calls == []
    assert attr.read_text(encoding="utf-8") == "0x00000000/0x00000000\n"


def test_vlan_session_uses_vlan_directory(tmp_path: Path) -> None:
    vlan_dir = _mesh_dir(tmp_path) / "vlan5"
    vlan_dir.mkdir()
    (vlan_dir / "ap_isolation").write_text("enabled\n", encoding="utf-8")
    tunable = Tunable(name="ap_isolation", abbr="ap", sysfs_name="ap_isolation", vlan=True)

    result = accessor.handle_setting(_session(tmp_path, vid=5), tunable)
    assert result.value == "enabled"


def test_socketless_session_with_netlink_only_tunable_fails(tmp_path: Path) -> None:
    tunable = load_tunables().tunables["multicast_forceflood"]
    assert tunable.sysfs_name is None

    with pytest.raises(SettingFailedError):
        accessor.handle_setting(_session(tmp_path), tunable)


def test_socketless_session_falls_back_for_catalog_tunable(tmp_path: Path) -> None:
    attr = _mesh_dir(tmp_path) / "gw_mode"
    attr.write_text("off\n", encoding="utf-8")
    tunable = load_tunables().tunables["gw_mode"]

    result = accessor.handle_setting(_session(tmp_path), tunable, ["server"], privileged=_root)
    assert result.via == "sysfs"
    assert attr.read_text(encoding="utf-8") == "server"

    with pytest.raises(InvalidValueError):
        accessor.handle_setting(_session(tmp_path), tunable, ["bogus"], privileged=_root)
    assert attr.read_text(encoding="utf-8") == "server"


def test_fallback_write_to_missing_attribute_fails(tmp_path: Path) -> None:
    mesh_dir = _mesh_dir(tmp_path)
    netlink_set = FakeNetlink(-errno.EOPNOTSUPP)
    tunable = Tunable(
        name="network_coding",
        abbr="nc",
        sysfs_name="network_coding",
        params=("enable", "disable", "1", "0"),
        netlink_set=netlink_set,
    )

    with pytest.raises(SettingFailedError):
        accessor.handle_setting(_session(tmp_path), tunable, ["enable"], privileged=_root)
    assert netlink_set.calls == [("enable",)]
    assert not (mesh_dir / "network_coding").exists()
