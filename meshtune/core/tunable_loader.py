"""Tunable catalog loading and validation for YAML-based meshtune catalogs.

Catalogs are read from the packaged ``meshtune.tunables`` resources first and
then from ``$XDG_CONFIG_HOME/meshtune/tunables`` and
``$XDG_DATA_HOME/meshtune/tunables``. A user tunable replaces a packaged one of
the same name (with a warning); abbreviations must stay unique across the
merged catalog.
"""

from __future__ import annotations

import functools
import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from meshtune.core.errors import TunableLoadError, TunableValidationError
from meshtune.core.model import NetlinkSpec, Tunable
from meshtune.core.netlink_ops import (
    ENABLE_PARAMS,
    PARSERS,
    build_netlink_get,
    build_netlink_set,
)
from meshtune.transports import netlink

LOGGER = logging.getLogger(__name__)

CATALOG_SUFFIXES = (".yml", ".yaml")
BOOL_TAG = "tag:yaml.org,2002:bool"


class UniqueKeyLoader(yaml.SafeLoader):
    """Safe loader without implicit booleans that rejects duplicate keys.

    batman-adv values such as ``on``/``off`` must reach the catalog as text,
    so flags are normalized by :func:`_normalize_bool` instead.
    """

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise TunableValidationError(f"Duplicate key '{key}' at line {key_node.start_mark.line + 1}")
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class LoadedTunables:
    tunables: dict[str, Tunable]
    warnings: tuple[str, ...]


@functools.lru_cache(maxsize=1)
def _schema_validator() -> Any:
    schema = json.loads(
        resources.files("meshtune.schemas").joinpath("tunable.schema.json").read_text(encoding="utf-8")
    )
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _user_catalog_dirs() -> list[Path]:
    home = Path.home()
    return [
        Path(os.environ.get("XDG_CONFIG_HOME", home / ".config")) / "meshtune" / "tunables",
        Path(os.environ.get("XDG_DATA_HOME", home / ".local" / "share")) / "meshtune" / "tunables",
    ]


def _catalog_sources() -> Iterator[tuple[bool, Path | Traversable]]:
    """Yield ``(is_user, path)`` for every catalog file, packaged ones first."""
    packaged = resources.files("meshtune.tunables").iterdir()
    for item in sorted(packaged, key=lambda p: p.name):
        if item.name.endswith(CATALOG_SUFFIXES):
            yield False, item
    for directory in _user_catalog_dirs():
        if directory.is_dir():
            for item in sorted(directory.iterdir()):
                if item.suffix in CATALOG_SUFFIXES:
                    yield True, item


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise TunableValidationError(f"{context} must be boolean true/false")


def _build_netlink_spec(spec: dict[str, Any], *, context: str) -> NetlinkSpec:
    attribute = spec["attribute"]
    if attribute not in netlink.ATTRIBUTES:
        raise TunableValidationError(f"{context}.netlink.attribute: unknown attribute '{attribute}'")

    for key in ("get_command", "set_command"):
        if key in spec and spec[key] not in netlink.COMMANDS:
            raise TunableValidationError(f"{context}.netlink.{key}: unknown command '{spec[key]}'")

    choices = spec.get("choices")
    if spec["type"] == "enum" and not choices:
        raise TunableValidationError(f"{context}.netlink: enum type requires choices")

    return NetlinkSpec(
        attribute=attribute,
        type=spec["type"],
        choices=dict(choices) if choices else None,
        get_command=spec.get("get_command", "BATADV_CMD_GET_MESH"),
        set_command=spec.get("set_command", "BATADV_CMD_SET_MESH"),
    )


def _build_tunable(name: str, doc: dict[str, Any], *, context: str) -> Tunable:
    sysfs_name = doc.get("sysfs_name")
    netlink_doc = doc.get("netlink")
    if sysfs_name is None and netlink_doc is None:
        raise TunableValidationError(f"{context}: needs a sysfs_name, a netlink block, or both")

    params = doc.get("params")
    if params == "enable":
        params = ENABLE_PARAMS
    elif params is not None:
        params = tuple(params)

    vlan = _normalize_bool(doc.get("vlan", False), context=f"{context}.vlan")
    netlink_spec = None
    netlink_get = netlink_set = None
    if netlink_doc is not None:
        netlink_spec = _build_netlink_spec(netlink_doc, context=context)
        netlink_get = build_netlink_get(netlink_spec, vlan=vlan)
        read_only = _normalize_bool(netlink_doc.get("read_only", False), context=f"{context}.netlink.read_only")
        if not read_only:
            netlink_set = build_netlink_set(netlink_spec, vlan=vlan)

    parser = doc.get("parser")
    return Tunable(
        name=name,
        abbr=doc["abbr"],
        description=doc.get("description", ""),
        sysfs_name=sysfs_name,
        params=params,
        vlan=vlan,
        netlink=netlink_spec,
        netlink_get=netlink_get,
        netlink_set=netlink_set,
        parse=PARSERS[parser] if parser else None,
    )


def _parse_catalog(source: Path | Traversable) -> dict[str, Tunable]:
    try:
        doc = yaml.load(source.read_text(encoding="utf-8"), Loader=UniqueKeyLoader)
    except OSError as exc:
        raise TunableLoadError(f"Could not read tunable file {source}: {exc}") from exc
    except TunableValidationError as exc:
        raise TunableValidationError(f"Invalid catalog {source}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TunableValidationError(f"Invalid YAML in {source}: {exc}") from exc

    try:
        _schema_validator().validate(doc)
    except ValidationError as exc:
        where = ".".join(str(p) for p in exc.absolute_path)
        raise TunableValidationError(
            f"Schema validation failed for {source}{f' ({where})' if where else ''}: {exc.message}"
        ) from exc

    return {
        name: _build_tunable(name, tunable_doc, context=f"{doc['id']}.{name}")
        for name, tunable_doc in doc["tunables"].items()
    }


def _check_abbreviations(tunables: dict[str, Tunable]) -> None:
    owners: dict[str, str] = {}
    for tunable in tunables.values():
        owner = owners.setdefault(tunable.abbr, tunable.name)
        if owner != tunable.name:
            raise TunableValidationError(
                f"Tunable '{tunable.name}': abbreviation '{tunable.abbr}' already used by '{owner}'"
            )


def load_tunables() -> LoadedTunables:
    tunables: dict[str, Tunable] = {}
    warnings: list[str] = []

    for is_user, source in _catalog_sources():
        for name, tunable in _parse_catalog(source).items():
            if is_user and name in tunables:
                warnings.append(f"User tunable '{name}' overrides packaged tunable")
                LOGGER.warning(warnings[-1])
            tunables[name] = tunable

    _check_abbreviations(tunables)
    return LoadedTunables(tunables=tunables, warnings=tuple(warnings))
