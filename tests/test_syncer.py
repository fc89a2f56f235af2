"""Unit tests for the reconciliation cycle.

Covers declaration-order processing, fail-fast behaviour on resolution and
provider errors, and the arguments handed to the zone client.
"""

from typing import Any, Dict, List, Sequence, Set

import pytest

from azure_dns_sync.config import Configuration, Defaults, SyncEntry
from azure_dns_sync.errors import ProviderError, ResolutionError
from azure_dns_sync.providers import DNSZoneClient
from azure_dns_sync.records import RecordSet
from azure_dns_sync.syncer import run, sync_entry

# =============================================================================
# Mock Zone Client
# =============================================================================


class MockZoneClient(DNSZoneClient):
    """In-memory zone keyed by (resource group, zone, name, type) with call tracking."""

    def __init__(self, failing_names: Set[str] | None = None):
        self.records: Dict[tuple, RecordSet] = {}
        self.calls: List[tuple] = []
        self._failing_names = failing_names or set()

    @property
    def name(self) -> str:
        return "MockZone"

    def create_or_update_record(
        self,
        resource_group: str,
        zone: str,
        name: str,
        record_type: str,
        record_set: RecordSet,
    ) -> Dict[str, Any]:
        self.calls.append((resource_group, zone, name, record_type, record_set))
        if name in self._failing_names:
            raise ProviderError(f"Error creating DNS record {name} in zone {zone}", 403)
        self.records[(resource_group, zone, name, record_type)] = record_set
        return {"name": name}


# =============================================================================
# Mock Resolver
# =============================================================================


class MockResolver:
    """Resolver binding returning canned answers and recording lookups."""

    def __init__(self, answers: Dict[str, Sequence[str]], failing: Set[str] | None = None):
        self.servers = ("192.0.2.53",)
        self._answers = answers
        self._failing = failing or set()
        self.lookups: List[str] = []

    def lookup(self, hostname: str) -> List[str]:
        self.lookups.append(hostname)
        if hostname in self._failing:
            raise ResolutionError(hostname, "The DNS query name does not exist")
        return list(self._answers.get(hostname, []))


# =============================================================================
# Test Helpers
# =============================================================================


def make_entry(name: str, resolver: MockResolver, record_name: str = "", ttl: int = 300) -> SyncEntry:
    return SyncEntry(
        name=name,
        record_name=record_name or name.split(".")[0],
        zone="example.com",
        resource_group="dns-rg",
        ttl=ttl,
        resolver=resolver,
    )


def make_configuration(*entries: SyncEntry) -> Configuration:
    return Configuration(entries=tuple(entries), defaults=Defaults("dns-rg", "example.com", 300))


# =============================================================================
# Single Entry
# =============================================================================


def test_sync_entry_upserts_resolved_addresses() -> None:
    """Resolved addresses are written as an A record set with the entry TTL."""
    resolver = MockResolver({"app.example.net": ["10.0.0.1", "10.0.0.2"]})
    client = MockZoneClient()

    record_set = sync_entry(make_entry("app.example.net", resolver, "www", ttl=300), client)

    assert record_set == RecordSet(ttl=300, addresses=("10.0.0.1", "10.0.0.2"))
    assert client.calls == [("dns-rg", "example.com", "www", "A", record_set)]


def test_sync_entry_writes_empty_record_set_for_no_addresses() -> None:
    """A hostname with no A records produces an empty record set, not an error."""
    resolver = MockResolver({})
    client = MockZoneClient()

    record_set = sync_entry(make_entry("empty.example.net", resolver), client)

    assert record_set.addresses == ()
    assert len(client.calls) == 1


def test_sync_entry_resolution_error_skips_upsert() -> None:
    resolver = MockResolver({}, failing={"gone.example.net"})
    client = MockZoneClient()

    with pytest.raises(ResolutionError):
        sync_entry(make_entry("gone.example.net", resolver), client)

    assert client.calls == []


# =============================================================================
# Full Cycle
# =============================================================================


def test_run_processes_entries_in_declaration_order() -> None:
    resolver = MockResolver(
        {"c.example.net": ["10.0.0.3"], "a.example.net": ["10.0.0.1"], "b.example.net": ["10.0.0.2"]}
    )
    client = MockZoneClient()
    configuration = make_configuration(
        make_entry("c.example.net", resolver),
        make_entry("a.example.net", resolver),
        make_entry("b.example.net", resolver),
    )

    run(configuration, client)

    assert resolver.lookups == ["c.example.net", "a.example.net", "b.example.net"]
    assert [call[2] for call in client.calls] == ["c", "a", "b"]


def test_run_stops_at_first_resolution_error() -> None:
    """Given [A, B, C] where B fails to resolve: A is written, C is untouched."""
    resolver = MockResolver(
        {"a.example.net": ["10.0.0.1"], "c.example.net": ["10.0.0.3"]},
        failing={"b.example.net"},
    )
    client = MockZoneClient()
    configuration = make_configuration(
        make_entry("a.example.net", resolver),
        make_entry("b.example.net", resolver),
        make_entry("c.example.net", resolver),
    )

    with pytest.raises(ResolutionError) as exc_info:
        run(configuration, client)

    assert exc_info.value.hostname == "b.example.net"
    assert [call[2] for call in client.calls] == ["a"]
    assert "c.example.net" not in resolver.lookups


def test_run_stops_at_first_provider_error() -> None:
    resolver = MockResolver(
        {"a.example.net": ["10.0.0.1"], "b.example.net": ["10.0.0.2"], "c.example.net": ["10.0.0.3"]}
    )
    client = MockZoneClient(failing_names={"b"})
    configuration = make_configuration(
        make_entry("a.example.net", resolver),
        make_entry("b.example.net", resolver),
        make_entry("c.example.net", resolver),
    )

    with pytest.raises(ProviderError) as exc_info:
        run(configuration, client)

    assert exc_info.value.status_code == 403
    assert [call[2] for call in client.calls] == ["a", "b"]
    assert resolver.lookups == ["a.example.net", "b.example.net"]


def test_next_run_starts_over_from_first_entry() -> None:
    """A failed cycle leaves no cursor behind; the next one begins at entry one."""
    resolver = MockResolver(
        {"a.example.net": ["10.0.0.1"], "b.example.net": ["10.0.0.2"]},
        failing={"b.example.net"},
    )
    client = MockZoneClient()
    configuration = make_configuration(
        make_entry("a.example.net", resolver),
        make_entry("b.example.net", resolver),
    )

    with pytest.raises(ResolutionError):
        run(configuration, client)
    resolver._failing.clear()
    run(configuration, client)

    assert resolver.lookups == ["a.example.net", "b.example.net", "a.example.net", "b.example.net"]
    assert [call[2] for call in client.calls] == ["a", "a", "b"]


def test_repeated_runs_send_identical_arguments() -> None:
    """Every cycle rewrites unconditionally with the same arguments."""
    answers = {"a.example.net": ["10.0.0.2", "10.0.0.1"]}
    resolver = MockResolver(answers)
    client = MockZoneClient()
    configuration = make_configuration(make_entry("a.example.net", resolver))

    run(configuration, client)
    answers["a.example.net"] = ["10.0.0.1", "10.0.0.2"]
    run(configuration, client)

    assert len(client.calls) == 2
    assert client.calls[0] == client.calls[1]
    assert len(client.records) == 1


def test_run_with_no_entries_does_nothing() -> None:
    client = MockZoneClient()

    run(make_configuration(), client)

    assert client.calls == []


# =============================================================================
# Configuration.run
# =============================================================================


def test_configuration_run_uses_attached_client() -> None:
    resolver = MockResolver({"a.example.net": ["10.0.0.1"]})
    client = MockZoneClient()
    configuration = make_configuration(make_entry("a.example.net", resolver))
    configuration.set_zone_client(client)

    configuration.run()

    assert len(client.calls) == 1


def test_configuration_run_without_client_raises() -> None:
    configuration = make_configuration()

    with pytest.raises(RuntimeError):
        configuration.run()


def test_configuration_zone_client_is_attached_once() -> None:
    configuration = make_configuration()
    client = MockZoneClient()
    configuration.set_zone_client(client)
    configuration.set_zone_client(client)

    with pytest.raises(RuntimeError):
        configuration.set_zone_client(MockZoneClient())
    assert configuration.zone_client is client
