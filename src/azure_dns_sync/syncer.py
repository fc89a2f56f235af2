"""Reconciliation of sync entries against a hosted DNS zone.

Each cycle resolves every entry and upserts its record set, in declaration
order. The first failure stops the cycle and is raised to the caller; the next
cycle starts over from the first entry.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from .providers import DNSZoneClient
from .records import RECORD_TYPE_A, RecordSet, build_record_set

if TYPE_CHECKING:
    from .config import Configuration, SyncEntry

logger = logging.getLogger(__name__)


def sync_entry(entry: SyncEntry, zone_client: DNSZoneClient) -> RecordSet:
    """Resolve one entry and upsert its A record set.

    Raises:
        ResolutionError: the hostname could not be resolved.
        ProviderError: the zone client failed to apply the record set.
    """
    addresses = entry.resolver.lookup(entry.name)
    record_set = build_record_set(addresses, entry.ttl)
    if not record_set.addresses:
        logger.warning(f"   {entry.name} resolved to no addresses, writing an empty record set")

    logger.info(
        f"   updating {zone_client.name} record {entry.record_name} in zone {entry.zone} "
        f"(RG:{entry.resource_group}, TTL:{record_set.ttl}, {list(record_set.addresses)})"
    )
    zone_client.create_or_update_record(
        entry.resource_group,
        entry.zone,
        entry.record_name,
        RECORD_TYPE_A,
        record_set,
    )
    return record_set


def run(configuration: Configuration, zone_client: DNSZoneClient) -> None:
    """Run one reconciliation cycle over all entries, stopping at the first error."""
    started = time.monotonic()
    for entry in configuration.entries:
        logger.info(f"Processing {entry.name} ({entry.record_name} in zone {entry.zone})")
        sync_entry(entry, zone_client)

    elapsed = time.monotonic() - started
    logger.info(f"Synced {len(configuration.entries)} entries in {elapsed:.1f}s")
