"""Provider-facing record sets built from resolver answers."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple

RECORD_TYPE_A = "A"


@dataclass(frozen=True)
class RecordSet:
    """TTL plus the IPv4 addresses of an A record set."""

    ttl: int
    addresses: Tuple[str, ...] = ()

    def to_azure_properties(self) -> Dict[str, Any]:
        """Return the Azure DNS RecordSet request body."""
        return {
            "properties": {
                "TTL": self.ttl,
                "ARecords": [{"ipv4Address": address} for address in self.addresses],
            }
        }


def build_record_set(addresses: Iterable[str], ttl: int) -> RecordSet:
    """Build a record set from resolved addresses.

    Duplicates are dropped and addresses sorted numerically, so the same set of
    answers always produces the same record set. No addresses gives an empty
    record set.
    """
    unique = {ipaddress.IPv4Address(address) for address in addresses}
    return RecordSet(ttl=ttl, addresses=tuple(str(a) for a in sorted(unique)))
