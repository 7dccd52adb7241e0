"""Amadeus API client — flight-offer search and airport lookup."""

import asyncio
import logging

import httpx

from fareflex.schemas.search import SearchQuery
from fareflex.services.errors import MalformedResponseError, UpstreamError
from fareflex.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

OFFERS_PATH = "/v2/shopping/flight-offers"
LOCATIONS_PATH = "/v1/reference-data/locations"


class AmadeusClient:
    """Adapter for the Amadeus Self-Service API.

    One call is one HTTP round trip with the cached bearer token attached.
    A 401 is not retried here; the token cache refreshes on expiry and the
    orchestrator decides what a failed call means.
    """

    def __init__(self, http: httpx.AsyncClient, tokens: TokenCache, max_concurrency: int = 10):
        self._http = http
        self._tokens = tokens
        self._semaphore = asyncio.Semaphore(max_concurrency)  # sandbox rate limit

    async def search_flight_offers(self, query: SearchQuery) -> list[dict]:
        """Search flight offers for one concrete query; returns the raw `data` list."""
        params = {
            "originLocationCode": query.origin,
            "destinationLocationCode": query.destination,
            "departureDate": query.depart_date.isoformat(),
            "adults": query.adults,
            "travelClass": query.cabin.value,
            "currencyCode": query.currency,
            "max": query.max_results,
        }
        if query.return_date:
            params["returnDate"] = query.return_date.isoformat()

        data = await self._get(OFFERS_PATH, params)
        offers = data.get("data", [])
        if not isinstance(offers, list):
            raise MalformedResponseError(200, "flight-offers 'data' is not a list")

        logger.debug(f"Amadeus returned {len(offers)} offers for {query.describe()} ({query.cabin.value})")
        return offers

    async def search_locations(self, keyword: str, limit: int = 8) -> list[dict]:
        """Airport autocomplete by keyword."""
        data = await self._get(
            LOCATIONS_PATH,
            {"keyword": keyword, "subType": "AIRPORT", "page[limit]": limit},
        )
        locations = data.get("data", [])
        if not isinstance(locations, list):
            raise MalformedResponseError(200, "locations 'data' is not a list")

        results = []
        for loc in locations:
            if not isinstance(loc, dict):
                continue
            address = loc.get("address") or {}
            results.append({
                "type": loc.get("subType"),
                "code": loc.get("iataCode"),
                "name": loc.get("name"),
                "city": address.get("cityName") or loc.get("name"),
                "country": address.get("countryName"),
            })
        return results

    async def _get(self, path: str, params: dict) -> dict:
        async with self._semaphore:
            token = await self._tokens.get_token()
            resp = await self._http.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )

        if resp.status_code >= 400:
            logger.error(f"Amadeus {resp.status_code} on GET {path}: {resp.text[:500]}")
            raise UpstreamError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(resp.status_code, resp.text[:500]) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(resp.status_code, "response body is not an object")
        return data
