"""
HubSpot API client for CRM and file operations.
"""

import json
from typing import Any

import requests

from docintake.config import settings
from docintake.core.logging import get_logger

log = get_logger(__name__)


class HubSpotClient:
    """Client for the HubSpot REST API.

    Methods raise requests.HTTPError on non-2xx responses; callers translate
    them into the pipeline's error taxonomy.
    """

    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or settings.hubspot_base_url).rstrip("/")
        self.access_token = access_token or settings.hubspot_access_token
        self.timeout = timeout or settings.hubspot_timeout_seconds
        self.session = session or requests.Session()

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        data: dict | None = None,
    ) -> dict[str, Any]:
        response = self.session.request(
            method,
            f"{self.base_url}{endpoint}",
            params=params,
            json=data,
            headers=self._auth_headers,
            timeout=self.timeout,
        )
        if not response.ok:
            log.error(
                "hubspot_http_error",
                method=method,
                endpoint=endpoint,
                status=response.status_code,
                response_body=response.text[:500],
            )
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    def _get(self, endpoint: str, params: dict | None = None) -> dict[str, Any]:
        return self._request("GET", endpoint, params=params)

    def _post(self, endpoint: str, data: dict) -> dict[str, Any]:
        return self._request("POST", endpoint, data=data)

    def _patch(self, endpoint: str, data: dict) -> dict[str, Any]:
        return self._request("PATCH", endpoint, data=data)

    # Files

    def get_signed_url(self, file_id: str) -> dict[str, Any]:
        """Fetch a signed download URL payload ({"url": ...}) for a file."""
        return self._get(f"/files/v3/files/{file_id}/signed-url")

    # Objects

    def get_record(
        self,
        object_type: str,
        object_id: str,
        properties: list[str] | None = None,
    ) -> dict[str, Any]:
        """Read one CRM record with the given properties."""
        params = {"properties": ",".join(properties)} if properties else None
        return self._get(f"/crm/v3/objects/{object_type}/{object_id}", params=params)

    def update_properties(
        self,
        object_type: str,
        object_id: str,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        """PATCH properties on a CRM record. Dict/list values are JSON-encoded."""
        encoded = {
            name: json.dumps(value) if isinstance(value, (dict, list)) else value
            for name, value in properties.items()
        }
        return self._patch(
            f"/crm/v3/objects/{object_type}/{object_id}",
            {"properties": encoded},
        )

    def update_property(
        self,
        object_type: str,
        object_id: str,
        name: str,
        value: Any,
    ) -> dict[str, Any]:
        return self.update_properties(object_type, object_id, {name: value})

    def get_associations(
        self,
        object_type: str,
        object_id: str,
        to_object_type: str,
        limit: int = 100,
    ) -> list[str]:
        """
        List ids of records of to_object_type associated with a record.

        Returns:
            Associated object ids as strings, in API order.
        """
        result = self._get(
            f"/crm/v4/objects/{object_type}/{object_id}/associations/{to_object_type}",
            params={"limit": limit},
        )
        return [str(item["toObjectId"]) for item in result.get("results", [])]

    def batch_read(
        self,
        object_type: str,
        ids: list[str],
        properties: list[str],
        archived: bool = False,
    ) -> list[dict[str, Any]]:
        """Read several records of one type in a single call."""
        result = self._post(
            f"/crm/v3/objects/{object_type}/batch/read",
            {
                "inputs": [{"id": str(i)} for i in ids],
                "properties": properties,
                "archived": archived,
            },
        )
        return result.get("results", [])
