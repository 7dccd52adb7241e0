from datetime import date

import httpx
import pytest

from fareflex.schemas.search import Cabin, SearchQuery
from fareflex.services.amadeus_client import AmadeusClient
from fareflex.services.errors import AuthError, MalformedResponseError, UpstreamError
from fareflex.services.token_cache import TokenCache

from fakes import build_offer


def make_client(offers_handler, client_id="id"):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json={"access_token": "secret-token", "expires_in": 1799})
        return offers_handler(request)

    http = httpx.AsyncClient(base_url="https://amadeus.test", transport=httpx.MockTransport(handler))
    tokens = TokenCache(http, client_id, "secret")
    return AmadeusClient(http, tokens)


QUERY = SearchQuery(
    origin="jfk",
    destination=" lax ",
    depart_date=date(2030, 6, 1),
    adults=2,
    cabin=Cabin.BUSINESS,
    currency="usd",
    max_results=30,
)


async def test_search_sends_query_and_bearer_token():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"data": [build_offer()]})

    offers = await make_client(handler).search_flight_offers(QUERY)

    assert len(offers) == 1
    assert seen["path"] == "/v2/shopping/flight-offers"
    assert seen["auth"] == "Bearer secret-token"
    assert seen["params"] == {
        "originLocationCode": "JFK",
        "destinationLocationCode": "LAX",
        "departureDate": "2030-06-01",
        "adults": "2",
        "travelClass": "BUSINESS",
        "currencyCode": "USD",
        "max": "30",
    }


async def test_return_date_is_sent_only_when_set():
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json={"data": []})

    await make_client(handler).search_flight_offers(QUERY.with_changes(return_date=date(2030, 6, 8)))
    assert seen["returnDate"] == "2030-06-08"


async def test_missing_data_is_empty_list():
    offers = await make_client(lambda r: httpx.Response(200, json={"meta": {"count": 0}})).search_flight_offers(QUERY)
    assert offers == []


@pytest.mark.parametrize("status", [400, 401, 500, 503])
async def test_non_2xx_is_upstream_error(status):
    client = make_client(lambda r: httpx.Response(status, text="nope"))
    with pytest.raises(UpstreamError) as exc_info:
        await client.search_flight_offers(QUERY)
    assert exc_info.value.status == status
    assert exc_info.value.body == "nope"


async def test_non_json_body_is_malformed():
    client = make_client(lambda r: httpx.Response(200, text="<html>"))
    with pytest.raises(MalformedResponseError):
        await client.search_flight_offers(QUERY)


async def test_data_not_a_list_is_malformed():
    client = make_client(lambda r: httpx.Response(200, json={"data": {"oops": 1}}))
    with pytest.raises(MalformedResponseError):
        await client.search_flight_offers(QUERY)


async def test_missing_credentials_surface_as_auth_error():
    client = make_client(lambda r: httpx.Response(200, json={"data": []}), client_id="")
    with pytest.raises(AuthError):
        await client.search_flight_offers(QUERY)


async def test_search_locations_maps_airports():
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json={"data": [
            {
                "subType": "AIRPORT",
                "iataCode": "LHR",
                "name": "HEATHROW",
                "address": {"cityName": "LONDON", "countryName": "UNITED KINGDOM"},
            },
            {"subType": "AIRPORT", "iataCode": "XYZ", "name": "NOWHERE"},
        ]})

    results = await make_client(handler).search_locations("lon")

    assert seen == {"keyword": "lon", "subType": "AIRPORT", "page[limit]": "8"}
    assert results == [
        {"type": "AIRPORT", "code": "LHR", "name": "HEATHROW", "city": "LONDON", "country": "UNITED KINGDOM"},
        {"type": "AIRPORT", "code": "XYZ", "name": "NOWHERE", "city": "NOWHERE", "country": None},
    ]
