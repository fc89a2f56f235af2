"""Sync entry configuration: YAML loading, defaulting and validation.

Example config file:

    default:
      resourceGroup: dns-rg
      zone: example.com
      ttl: 300
    entries:
      - name: upstream.example.net
        dns: ["1.1.1.1", "9.9.9.9:53"]
        azure:
          name: www
          ttl: 60
      - name: api.example.net
        azure:
          name: api
          zone: example.org
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigReadError, ParseError, ValidationError
from .providers import DNSZoneClient
from .resolver import DEFAULT_RESOLVER, ResolverBinding
from .syncer import run as run_cycle

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class Defaults:
    """Configuration-wide fallbacks for entries missing a field."""

    resource_group: str = ""
    zone: str = ""
    ttl: int = 0


@dataclass(frozen=True)
class SyncEntry:
    """One hostname mapped onto an A record set in a hosted zone."""

    name: str
    record_name: str
    zone: str
    resource_group: str
    ttl: int
    resolver_servers: Tuple[str, ...] = ()
    resolver: ResolverBinding = field(default=DEFAULT_RESOLVER, compare=False, repr=False)


@dataclass
class Configuration:
    """Validated sync entries, ready to run.

    Immutable after loading except for the zone client, which is attached
    once before the first run.
    """

    entries: Tuple[SyncEntry, ...]
    defaults: Defaults = field(default_factory=Defaults)
    path: str = ""
    _zone_client: Optional[DNSZoneClient] = field(default=None, init=False, repr=False, compare=False)

    @property
    def zone_client(self) -> Optional[DNSZoneClient]:
        return self._zone_client

    def set_zone_client(self, client: DNSZoneClient) -> None:
        if self._zone_client is not None and self._zone_client is not client:
            raise RuntimeError("A DNS zone client is already attached")
        self._zone_client = client

    def run(self) -> None:
        """Run one reconciliation cycle with the attached zone client."""
        if self._zone_client is None:
            raise RuntimeError("No DNS zone client attached; call set_zone_client() first")
        run_cycle(self, self._zone_client)


# =============================================================================
# Loading
# =============================================================================


def load_configuration(path: str) -> Configuration:
    """Read, default and validate the sync entry file at path.

    Raises:
        ConfigReadError: the file cannot be read.
        ParseError: the YAML is malformed or has the wrong structure.
        ValidationError: an entry misses a required field after defaulting.
    """
    logger.info(f"Parsing DNS configuration from {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigReadError(path, e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise ParseError(f"YAML parsing error in {path}: {e}") from e

    configuration = parse_configuration(data)
    configuration.path = path
    logger.info(f"Loaded {len(configuration.entries)} entries from {path}")
    return configuration


def parse_configuration(data: Any) -> Configuration:
    """Build a Configuration from an already-parsed YAML document."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("Configuration must be a YAML mapping")

    defaults = _parse_defaults(data.get("default"))

    raw_entries = data.get("entries")
    if raw_entries is None:
        raw_entries = []
    if not isinstance(raw_entries, list):
        raise ParseError("'entries' must be a list")

    entries: List[SyncEntry] = []
    for index, raw in enumerate(raw_entries):
        entries.append(_build_entry(index, raw, defaults))

    return Configuration(entries=tuple(entries), defaults=defaults)


def _parse_defaults(raw: Any) -> Defaults:
    if raw is None:
        return Defaults()
    if not isinstance(raw, dict):
        raise ParseError("'default' must be a mapping")
    return Defaults(
        resource_group=_get_str(raw, "resourceGroup", "default"),
        zone=_get_str(raw, "zone", "default"),
        ttl=_get_int(raw, "ttl", "default"),
    )


def _build_entry(index: int, raw: Any, defaults: Defaults) -> SyncEntry:
    where = f"entries[{index}]"
    if not isinstance(raw, dict):
        raise ParseError(f"{where} must be a mapping")

    azure = raw.get("azure")
    if azure is None:
        azure = {}
    if not isinstance(azure, dict):
        raise ParseError(f"{where}.azure must be a mapping")

    name = _get_str(raw, "name", where)
    servers = _get_servers(raw, where)
    record_name = _get_str(azure, "name", f"{where}.azure")
    zone = _get_str(azure, "zone", f"{where}.azure") or defaults.zone
    ttl = _get_int(azure, "ttl", f"{where}.azure") or defaults.ttl
    resource_group = _get_str(azure, "resourceGroup", f"{where}.azure") or defaults.resource_group

    # Checked in a fixed order; the first missing field wins.
    if not name:
        raise ValidationError("name", f"{where}: name cannot be empty")
    if not record_name:
        raise ValidationError("azure.name", f"{where} ({name}): azure.name cannot be empty")
    if not zone:
        raise ValidationError("azure.zone", f"{where} ({name}): azure.zone cannot be empty")
    if not ttl:
        raise ValidationError("azure.ttl", f"{where} ({name}): azure.ttl cannot be empty")
    if ttl < 0:
        raise ValidationError("azure.ttl", f"{where} ({name}): azure.ttl must be positive")
    if not resource_group:
        raise ValidationError(
            "azure.resourceGroup", f"{where} ({name}): azure.resourceGroup cannot be empty"
        )

    if servers:
        try:
            resolver = ResolverBinding(servers)
        except ValueError as e:
            raise ValidationError("dns", f"{where} ({name}): {e}") from e
    else:
        resolver = DEFAULT_RESOLVER

    return SyncEntry(
        name=name,
        record_name=record_name,
        zone=zone,
        resource_group=resource_group,
        ttl=ttl,
        resolver_servers=tuple(servers),
        resolver=resolver,
    )


# =============================================================================
# Field Helpers
# =============================================================================


def _get_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (bool, dict, list)):
        raise ParseError(f"{where}.{key} must be a string")
    return str(value).strip()


def _get_int(data: Dict[str, Any], key: str, where: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParseError(f"{where}.{key} must be an integer, got {value!r}")
    return value


def _get_servers(data: Dict[str, Any], where: str) -> List[str]:
    value = data.get("dns")
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseError(f"{where}.dns must be a list of resolver addresses")
    servers = []
    for item in value:
        if not isinstance(item, str):
            raise ParseError(f"{where}.dns entries must be strings, got {item!r}")
        if item.strip():
            servers.append(item.strip())
    return servers
