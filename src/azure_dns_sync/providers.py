"""DNS zone client interface and the Azure DNS implementation."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from .azure_auth import AzureCredentials, ServicePrincipalToken
from .errors import ProviderError
from .records import RecordSet

logger = logging.getLogger(__name__)

AZURE_DNS_API_VERSION = "2018-05-01"


# =============================================================================
# DNS Zone Client Interface
# =============================================================================


class DNSZoneClient(ABC):
    """Abstract capability to upsert record sets in a hosted DNS zone."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name for logging."""
        pass

    @abstractmethod
    def create_or_update_record(
        self,
        resource_group: str,
        zone: str,
        name: str,
        record_type: str,
        record_set: RecordSet,
    ) -> Dict[str, Any]:
        """Create or replace a record set.

        Must be idempotent: repeating a call with identical arguments leaves
        the zone in the same state.

        Raises:
            ProviderError: the provider rejected or failed the request.
        """
        pass


# =============================================================================
# Azure DNS
# =============================================================================


class AzureDNSZoneClient(DNSZoneClient):
    """Azure DNS record sets client using the Resource Manager REST API."""

    def __init__(
        self,
        subscription_id: str,
        token: ServicePrincipalToken,
        resource_manager_endpoint: str = "https://management.azure.com/",
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._subscription_id = subscription_id
        self._token = token
        self._endpoint = resource_manager_endpoint.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "Azure DNS"

    def record_set_url(self, resource_group: str, zone: str, name: str, record_type: str) -> str:
        parts = [
            "subscriptions",
            self._subscription_id,
            "resourceGroups",
            resource_group,
            "providers/Microsoft.Network/dnsZones",
            zone,
            record_type,
            name,
        ]
        path = "/".join(quote(p, safe="/@") for p in parts)
        return f"{self._endpoint}/{path}"

    def create_or_update_record(
        self,
        resource_group: str,
        zone: str,
        name: str,
        record_type: str,
        record_set: RecordSet,
    ) -> Dict[str, Any]:
        url = self.record_set_url(resource_group, zone, name, record_type)
        headers = {"Authorization": f"Bearer {self._token.get_token()}"}
        try:
            response = self._session.put(
                url,
                params={"api-version": AZURE_DNS_API_VERSION},
                json=record_set.to_azure_properties(),
                headers=headers,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ProviderError(
                f"Error creating DNS record {name} in zone {zone}: {e}"
            ) from e

        if not response.ok:
            raise ProviderError(
                f"Error creating DNS record {name} in zone {zone}: "
                f"HTTP {response.status_code} {_azure_error_message(response)}",
                status_code=response.status_code,
            )

        logger.debug(f"{self.name} answered HTTP {response.status_code} for {url}")
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            return {}


def create_zone_client(credentials: AzureCredentials) -> AzureDNSZoneClient:
    """Build an authorized Azure DNS zone client.

    The token is fetched eagerly so bad credentials fail at startup.
    """
    token = ServicePrincipalToken(credentials)
    token.get_token()
    return AzureDNSZoneClient(
        subscription_id=credentials.subscription_id,
        token=token,
        resource_manager_endpoint=credentials.cloud.resource_manager_endpoint,
    )


def _azure_error_message(response: requests.Response) -> str:
    """Extract the error message from an Azure error body, if any."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return response.text.strip()
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        code = error.get("code") or ""
        message = error.get("message") or ""
        return f"{code}: {message}".strip(": ")
    return response.text.strip()
