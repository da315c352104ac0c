"""
services/hotel_service.py — Hotel search (Booking.com through RapidAPI).

search_hotels() never fails: without an API key, or when the provider
errors or returns nothing usable, it logs a warning and returns a fixed
list of sample hotels. The second element of its result tells the caller
which list it got so the route can attach a HOTELS_FALLBACK warning.

Result items: {"id", "name", "price", "rating", "image", "url"}.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

import httpx

from backend.app.services import trip_service
from backend.app.store import ItemStore

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300"

_IMG_A = "https://images.unsplash.com/photo-1566073771259-6a8506099945?auto=format&fit=crop&w=800&q=80"
_IMG_B = "https://images.unsplash.com/photo-1520250497591-112f2f40a3f4?auto=format&fit=crop&w=800&q=80"
_IMG_C = "https://images.unsplash.com/photo-1582719508461-905c673771fd?auto=format&fit=crop&w=800&q=80"


def mock_hotels(location: str) -> list[dict]:
    """Deterministic sample results for `location`."""
    lowered = location.lower()
    if "thai" in lowered or "bangkok" in lowered:
        return [
            {"id": 101, "name": "Grand Hyatt Erawan Bangkok", "price": "180", "rating": 9.1, "image": _IMG_C, "url": "#"},
            {"id": 102, "name": "Sala Rattanakosin", "price": "120", "rating": 8.8, "image": _IMG_B, "url": "#"},
            {"id": 103, "name": "The Siam Hotel", "price": "250", "rating": 9.5, "image": _IMG_A, "url": "#"},
        ]
    return [
        {"id": 1, "name": f"Grand Plaza {location}", "price": "150", "rating": 8.5, "image": _IMG_A, "url": "#"},
        {"id": 2, "name": f"{location} City Inn", "price": "95", "rating": 7.9, "image": _IMG_B, "url": "#"},
        {"id": 3, "name": "Sunset Resort", "price": "210", "rating": 9.2, "image": _IMG_C, "url": "#"},
    ]


def _format_price(raw: dict) -> str:
    value = (
        ((raw.get("composite_price_breakdown") or {}).get("gross_amount") or {}).get("value")
    )
    if value is None:
        return "Check Price"
    return f"{float(value):.0f}"


def to_hotel(raw: dict) -> dict:
    return {
        "id": raw["hotel_id"],
        "name": raw["hotel_name"],
        "price": _format_price(raw),
        "rating": raw.get("review_score") or "N/A",
        "image": raw.get("max_photo_url") or PLACEHOLDER_IMAGE,
        "url": raw.get("url") or "#",
    }


class BookingClient:

    def __init__(
            self,
            api_key: str,
            host: str = "booking-com.p.rapidapi.com",
            timeout: float = 10.0,
            http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.host = host
        self._client = http_client or httpx.Client(timeout=timeout)

    def _get(self, path: str, params: dict):
        response = self._client.get(
            f"https://{self.host}{path}",
            params=params,
            headers={"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": self.host},
        )
        response.raise_for_status()
        return response.json()

    def search(self, location: str) -> list[dict]:
        """
        Location lookup, then a one-week search starting today.

        Raises httpx.HTTPError, LookupError, ValueError or TypeError on any
        provider or data problem; search_hotels() turns those into the
        sample list.
        """
        locations = self._get("/v1/hotels/locations", {"name": location, "locale": "en-gb"})
        if not locations:
            raise LookupError(f"no location found for {location!r}")

        today = date.today()
        result = self._get("/v1/hotels/search", {
            "dest_id": locations[0]["dest_id"],
            "search_type": locations[0]["dest_type"],
            "arrival_date": today.isoformat(),
            "departure_date": (today + timedelta(days=7)).isoformat(),
            "adults_number": 2,
            "room_number": 1,
            "units": "metric",
            "order_by": "popularity",
            "filter_by_currency": "USD",
            "locale": "en-gb",
        }).get("result")
        if not result:
            raise LookupError(f"no hotels returned for {location!r}")

        return [to_hotel(raw) for raw in result]


def search_hotels(location: str, client: BookingClient) -> tuple[list[dict], bool]:
    """Returns (hotels, used_fallback)."""
    if not client.api_key:
        logger.warning("No hotel search API key configured; returning sample hotels")
        return mock_hotels(location), True

    try:
        return client.search(location), False
    except (httpx.HTTPError, LookupError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Hotel search for %r failed, using sample hotels: %s", location, exc)
        return mock_hotels(location), True


def search_hotels_for_trip(
        trip_id: str,
        caller_id: int,
        location: str | None,
        store: ItemStore,
        client: BookingClient,
) -> tuple[list[dict], bool]:
    """Hotel search for a trip the caller belongs to; location defaults to its destination."""
    trip = trip_service.get_trip_for_member(trip_id, caller_id, store)
    return search_hotels((location or "").strip() or trip["destination"], client)
