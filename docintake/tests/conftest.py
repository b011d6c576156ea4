"""
Shared pytest fixtures for docintake tests.
"""

import json
from typing import Any

import pytest
import requests

from docintake.core.models import ExtractedRecord, SignedDownloadLink


def http_error(status: int) -> requests.HTTPError:
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError(f"{status} Error", response=response)


class FakeHubSpot:
    """In-memory stand-in for HubSpotClient that echoes writes back on reads."""

    def __init__(self):
        self.records: dict[tuple[str, str], dict[str, Any]] = {}
        self.writes: list[tuple[str, str, str, Any]] = []
        self.fail_properties: dict[str, int] = {}
        self.signed_urls: dict[str, str] = {}
        self.associations: dict[tuple[str, str, str], list[str]] = {}
        self.batch_records: dict[str, list[dict[str, Any]]] = {}

    def update_property(self, object_type, object_id, name, value):
        if name in self.fail_properties:
            raise http_error(self.fail_properties[name])
        stored = json.dumps(value) if isinstance(value, (dict, list)) else value
        self.writes.append((object_type, object_id, name, value))
        self.records.setdefault((object_type, object_id), {})[name] = stored
        return {"id": object_id, "properties": {name: stored}}

    def get_record(self, object_type, object_id, properties=None):
        props = self.records.get((object_type, object_id), {})
        if properties:
            props = {k: v for k, v in props.items() if k in properties}
        return {"id": object_id, "properties": props}

    def get_signed_url(self, file_id):
        if file_id not in self.signed_urls:
            raise http_error(404)
        return {"url": self.signed_urls[file_id]}

    def get_associations(self, object_type, object_id, to_object_type, limit=100):
        return self.associations.get((object_type, object_id, to_object_type), [])[:limit]

    def batch_read(self, object_type, ids, properties, archived=False):
        return self.batch_records.get(object_type, [])

    def written(self, name: str) -> list[Any]:
        return [value for _, _, prop, value in self.writes if prop == name]


@pytest.fixture
def fake_hubspot() -> FakeHubSpot:
    return FakeHubSpot()


@pytest.fixture
def sample_record() -> ExtractedRecord:
    """Sample extraction result."""
    return ExtractedRecord(
        first_name="Ana",
        last_name="Muster",
        street_address="Bahnhofstrasse 1, 8001 Zürich",
        date_of_birth="01.02.1990",
        nationality="Portugal",
        permit_expiry_date="31.12.2027",
        permit_type="Aufenthaltsbewilligung",
    )


@pytest.fixture
def sample_event() -> dict[str, Any]:
    """Analyze-shaped HubSpot webhook event."""
    return {
        "objectId": 456,
        "propertyName": "file_id",
        "propertyValue": "f123,0-1,456",
        "subscriptionType": "contact.propertyChange",
    }


@pytest.fixture
def image_link() -> SignedDownloadLink:
    return SignedDownloadLink(url="https://files.example.com/signed/permit.png?sig=abc", file_id="f123")


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock settings for testing."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")
    monkeypatch.setenv("HUBSPOT_ACCESS_TOKEN", "test-hubspot-token")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_USER", "reports@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "test-smtp-password")
    monkeypatch.setenv("EMAIL_SEND_TO", "office@example.com")
