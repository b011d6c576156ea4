"""Unit tests for the HubSpot REST client."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from docintake.services.hubspot import HubSpotClient


def make_response(status: int = 200, body=None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode() if body is not None else b""
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.request.return_value = make_response(200, {})
    return session


@pytest.fixture
def client(session):
    return HubSpotClient(
        base_url="https://api.example.com/",
        access_token="pat-123",
        timeout=5,
        session=session,
    )


class TestHubSpotClient:
    def test_signed_url(self, client, session):
        session.request.return_value = make_response(200, {"url": "https://files/x.pdf"})

        assert client.get_signed_url("f1") == {"url": "https://files/x.pdf"}

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert url == "https://api.example.com/files/v3/files/f1/signed-url"
        assert kwargs["headers"]["Authorization"] == "Bearer pat-123"
        assert kwargs["timeout"] == 5

    def test_update_property_encodes_objects(self, client, session):
        client.update_property("0-1", "456", "extracted_data", {"firstName": "Ana"})

        method, url = session.request.call_args.args
        assert method == "PATCH"
        assert url == "https://api.example.com/crm/v3/objects/0-1/456"
        sent = session.request.call_args.kwargs["json"]
        assert sent == {"properties": {"extracted_data": '{"firstName": "Ana"}'}}

    def test_update_property_plain_value(self, client, session):
        client.update_property("0-1", "456", "extracted_full_name", "Ana Muster")

        sent = session.request.call_args.kwargs["json"]
        assert sent == {"properties": {"extracted_full_name": "Ana Muster"}}

    def test_get_record_properties(self, client, session):
        client.get_record("0-1", "456", ["extracted_data", "file_id"])
        assert session.request.call_args.kwargs["params"] == {"properties": "extracted_data,file_id"}

    def test_associations(self, client, session):
        session.request.return_value = make_response(200, {
            "results": [{"toObjectId": 900}, {"toObjectId": 901}],
        })

        ids = client.get_associations("0-1", "101", "0-3", limit=1)

        assert ids == ["900", "901"]
        _, url = session.request.call_args.args
        assert url == "https://api.example.com/crm/v4/objects/0-1/101/associations/0-3"
        assert session.request.call_args.kwargs["params"] == {"limit": 1}

    def test_batch_read(self, client, session):
        session.request.return_value = make_response(200, {
            "results": [{"id": "s1", "properties": {"file_id": "f1"}}],
        })

        results = client.batch_read("2-52156116", ["s1"], ["file_id"])

        assert results == [{"id": "s1", "properties": {"file_id": "f1"}}]
        assert session.request.call_args.kwargs["json"] == {
            "inputs": [{"id": "s1"}],
            "properties": ["file_id"],
            "archived": False,
        }

    def test_empty_body(self, client, session):
        session.request.return_value = make_response(204)
        assert client.update_property("0-1", "456", "x", "y") == {}

    def test_http_error_raises(self, client, session):
        session.request.return_value = make_response(404, {"message": "not found"})

        with pytest.raises(requests.HTTPError) as exc_info:
            client.get_signed_url("missing")
        assert exc_info.value.response.status_code == 404
