import base64
import json

import httpx
import pytest

from conftest import provider_item
from directory.errors import ProviderAuthError, ProviderUnavailable
from directory.providers import DataForSEOClient
from directory.providers.dataforseo import build_keyword


def _ok_payload(items):
    return {
        "status_code": 20000,
        "status_message": "Ok.",
        "tasks": [
            {
                "status_code": 20000,
                "status_message": "Ok.",
                "result": [{"keyword": "pizza", "items": items}],
            }
        ],
    }


def _client(handler) -> DataForSEOClient:
    http_client = httpx.Client(
        base_url="https://api.dataforseo.com/v3",
        transport=httpx.MockTransport(handler),
    )
    return DataForSEOClient("login@example.com", "secret", client=http_client)


def test_build_keyword():
    assert build_keyword("Pizza restaurant", "Springfield", "IL") == "Pizza restaurant Springfield IL"
    assert build_keyword("Plumber", " St. Louis ", "") == "Plumber St. Louis"


def test_search_posts_live_request_and_parses_items():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_ok_payload([provider_item("place-1", "Joe's Pizza")]))

    records = _client(handler).search("Pizza restaurant", "Springfield", "IL")

    assert captured["path"] == "/v3/serp/google/maps/live/advanced"
    expected_auth = base64.b64encode(b"login@example.com:secret").decode()
    assert captured["auth"] == f"Basic {expected_auth}"
    assert captured["body"] == [
        {
            "keyword": "Pizza restaurant Springfield IL",
            "location_code": 2840,
            "language_code": "en",
            "device": "desktop",
            "os": "windows",
            "depth": 100,
        }
    ]
    [record] = records
    assert record.place_id == "place-1"
    assert record.address_info.city == "Springfield"
    assert record.rating.votes_count == 120


def test_invalid_items_are_rejected_individually():
    items = [
        provider_item("place-1", "Good"),
        {"title": "No identifier"},
        provider_item("place-3", "Bad latitude", latitude=123.0),
        "not-an-object",
        {"title": "Cid only", "cid": 987654321, "address_info": None, "additional_categories": None},
    ]

    records = _client(lambda request: httpx.Response(200, json=_ok_payload(items))).search("Pizza", "Springfield", "IL")

    assert [record.place_id for record in records] == ["place-1", "987654321"]
    assert records[1].additional_categories == []


def test_no_results_status_returns_empty_list():
    payload = _ok_payload([])
    payload["tasks"][0] = {"status_code": 40102, "status_message": "No Search Results.", "result": None}

    records = _client(lambda request: httpx.Response(200, json=payload)).search("Pizza", "Nowhere", "IL")

    assert records == []


def test_unauthorized_raises_auth_error():
    with pytest.raises(ProviderAuthError):
        _client(lambda request: httpx.Response(401, json={})).search("Pizza", "Springfield", "IL")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"status_code": 40200, "status_message": "Payment Required."}),
        httpx.Response(
            200,
            json={"status_code": 20000, "tasks": [{"status_code": 40501, "status_message": "Invalid Field"}]},
        ),
    ],
)
def test_provider_failures_raise_unavailable(response):
    with pytest.raises(ProviderUnavailable):
        _client(lambda request: response).search("Pizza", "Springfield", "IL")


def test_timeout_raises_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderUnavailable):
        _client(handler).search("Pizza", "Springfield", "IL")


def test_missing_credentials_rejected():
    with pytest.raises(ProviderAuthError):
        DataForSEOClient("", "secret")
