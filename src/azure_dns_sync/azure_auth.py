"""Azure credential file parsing and service principal tokens."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .errors import AuthenticationError, ConfigReadError, ParseError, ValidationError

logger = logging.getLogger(__name__)

# Refresh tokens this long before they expire.
TOKEN_REFRESH_MARGIN_SECONDS = 300


@dataclass(frozen=True)
class AzureCloud:
    """Endpoints of one Azure cloud environment."""

    name: str
    active_directory_endpoint: str
    resource_manager_endpoint: str


AZURE_CLOUDS: Dict[str, AzureCloud] = {
    "azurepubliccloud": AzureCloud(
        "AzurePublicCloud",
        "https://login.microsoftonline.com/",
        "https://management.azure.com/",
    ),
    "azurechinacloud": AzureCloud(
        "AzureChinaCloud",
        "https://login.chinacloudapi.cn/",
        "https://management.chinacloudapi.cn/",
    ),
    "azureusgovernmentcloud": AzureCloud(
        "AzureUSGovernmentCloud",
        "https://login.microsoftonline.us/",
        "https://management.usgovcloudapi.net/",
    ),
    "azuregermancloud": AzureCloud(
        "AzureGermanCloud",
        "https://login.microsoftonline.de/",
        "https://management.microsoftazure.de/",
    ),
}


@dataclass(frozen=True)
class AzureCredentials:
    """Service principal credentials from an azure.json style file."""

    tenant_id: str
    subscription_id: str
    client_id: str
    client_secret: str = field(repr=False)
    cloud: AzureCloud = AZURE_CLOUDS["azurepubliccloud"]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AzureCredentials":
        """Build credentials, checking required keys in a fixed order."""
        values = {}
        for key in ("tenantId", "subscriptionId", "aadClientId", "aadClientSecret"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ParseError(f"{key} must be a string")
            if not value or not value.strip():
                raise ValidationError(key, f"{key} is empty")
            values[key] = value.strip()

        cloud_name = str(data.get("cloud") or "AzurePublicCloud").strip()
        cloud = AZURE_CLOUDS.get(cloud_name.lower())
        if cloud is None:
            raise ValidationError(
                "cloud",
                f"Unsupported cloud '{cloud_name}'. Supported: "
                f"{', '.join(c.name for c in AZURE_CLOUDS.values())}",
            )

        return cls(
            tenant_id=values["tenantId"],
            subscription_id=values["subscriptionId"],
            client_id=values["aadClientId"],
            client_secret=values["aadClientSecret"],
            cloud=cloud,
        )

    @classmethod
    def from_file(cls, path: str) -> "AzureCredentials":
        logger.info(f"Parsing Azure configuration from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigReadError(path, e.strerror or str(e)) from e
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Azure configuration {path} must be a JSON object")
        return cls.from_dict(data)


class ServicePrincipalToken:
    """OAuth2 client-credentials token for Azure Resource Manager.

    The token is cached and fetched again shortly before it expires, so a
    single instance can serve a long-running daemon.
    """

    def __init__(
        self,
        credentials: AzureCredentials,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._credentials = credentials
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._access_token = ""
        self._expires_on = 0.0

    @property
    def token_url(self) -> str:
        endpoint = self._credentials.cloud.active_directory_endpoint.rstrip("/")
        return f"{endpoint}/{self._credentials.tenant_id}/oauth2/token"

    def get_token(self) -> str:
        """Return a valid access token, refreshing it when close to expiry."""
        if not self._access_token or time.time() >= self._expires_on - TOKEN_REFRESH_MARGIN_SECONDS:
            self.refresh()
        return self._access_token

    def refresh(self) -> None:
        logger.info("Fetching Azure service principal token")
        data = {
            "grant_type": "client_credentials",
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
            "resource": self._credentials.cloud.resource_manager_endpoint,
        }
        try:
            response = self._session.post(self.token_url, data=data, timeout=self._timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.HTTPError as e:
            raise AuthenticationError(
                f"Failed to fetch Azure token: {e}",
                status_code=e.response.status_code if e.response is not None else None,
            ) from e
        except (requests.exceptions.RequestException, json.JSONDecodeError, ValueError) as e:
            raise AuthenticationError(f"Failed to fetch Azure token: {e}") from e

        access_token = body.get("access_token") if isinstance(body, dict) else None
        if not access_token:
            raise AuthenticationError("Azure token response has no access_token")

        self._access_token = access_token
        self._expires_on = _token_expiry(body)
        logger.info(" * successful")


def _token_expiry(body: Dict[str, Any]) -> float:
    """Absolute expiry time of a token response, in epoch seconds."""
    try:
        if body.get("expires_on"):
            return float(body["expires_on"])
        if body.get("expires_in"):
            return time.time() + float(body["expires_in"])
    except (TypeError, ValueError) as e:
        logger.warning(f"Unparseable token expiry in Azure response: {e}")
    # Unknown lifetime: treat as one hour, the Azure AD default.
    return time.time() + 3600
