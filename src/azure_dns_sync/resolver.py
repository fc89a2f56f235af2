"""Resolver bindings: hostname lookups against a fixed set of nameservers."""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Sequence, Tuple

import dns.exception
import dns.resolver

from .errors import ResolutionError

logger = logging.getLogger(__name__)

# Public recursive resolvers from Google.
DEFAULT_NAMESERVERS: Tuple[str, ...] = ("8.8.8.8", "8.8.4.4")
DEFAULT_PORT = 53
DEFAULT_LIFETIME_SECONDS = 10.0


def _split_server(server: str) -> Tuple[str, int]:
    """Split "host", "host:port" or "[v6]:port" into (host, port)."""
    server = server.strip()
    if server.startswith("["):
        host, _, rest = server[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif server.count(":") == 1:
        host, port = server.split(":", 1)
    else:
        host, port = server, ""

    try:
        ipaddress.ip_address(host)
    except ValueError as e:
        raise ValueError(f"Resolver address must be an IP address: {server!r}") from e

    if not port:
        return host, DEFAULT_PORT
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"Invalid resolver port in {server!r}")
    return host, int(port)


class ResolverBinding:
    """Forward A-record lookups using exactly the configured nameservers.

    Results are never cached; every call queries upstream again.
    """

    def __init__(self, servers: Sequence[str], lifetime: float = DEFAULT_LIFETIME_SECONDS):
        if not servers:
            raise ValueError("ResolverBinding requires at least one server")
        self.servers: Tuple[str, ...] = tuple(servers)

        self._resolver = dns.resolver.Resolver(configure=False)
        self._resolver.lifetime = lifetime
        nameservers: List[str] = []
        ports = {}
        for server in self.servers:
            host, port = _split_server(server)
            nameservers.append(host)
            if port != DEFAULT_PORT:
                ports[host] = port
        # Ports must be in place before nameservers are assigned.
        self._resolver.nameserver_ports = ports
        self._resolver.nameservers = nameservers

    def __repr__(self) -> str:
        return f"ResolverBinding({list(self.servers)!r})"

    def lookup(self, hostname: str) -> List[str]:
        """Resolve hostname to its IPv4 addresses.

        A name that exists but has no A data yields an empty list.

        Raises:
            ResolutionError: NXDOMAIN, timeout or any other resolver failure.
        """
        logger.info(f"   resolving {hostname} using {list(self.servers)}")
        try:
            answer = self._resolver.resolve(hostname, "A", search=False)
        except dns.resolver.NoAnswer:
            logger.warning(f"   {hostname} has no A records")
            return []
        except dns.exception.DNSException as e:
            raise ResolutionError(hostname, str(e) or type(e).__name__) from e

        addresses = [rdata.address for rdata in answer]
        logger.info(f"   resolved {hostname} to {addresses}")
        return addresses


# Shared by every entry without its own "dns" list; never mutated.
DEFAULT_RESOLVER = ResolverBinding(DEFAULT_NAMESERVERS)
