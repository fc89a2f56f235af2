"""azure-dns-sync: resolve hostnames and upsert them as Azure DNS A records."""

__version__ = "0.1.0"
