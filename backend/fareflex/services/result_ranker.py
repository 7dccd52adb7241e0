"""Result ranker — simplifies raw flight offers and orders them cheapest first."""

import re
from decimal import Decimal, InvalidOperation

from fareflex.schemas.search import RankedResult

MAX_RESULTS = 12
ROUTE_SEPARATOR = " · "

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")


def format_duration(iso: str | None) -> str:
    """Render an ISO 8601 duration like PT5H30M as '5h 30m'; '' if not PT-hours/minutes."""
    if not isinstance(iso, str):
        return ""
    match = _DURATION_RE.fullmatch(iso.strip())
    if not match or not any(match.groups()):
        return ""
    hours, minutes = match.groups()
    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")
    return " ".join(parts)


def _parse_price(offer: dict) -> Decimal:
    price = offer.get("price")
    raw = price.get("grandTotal") if isinstance(price, dict) else None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def _segments(itinerary: dict) -> list[dict]:
    segs = itinerary.get("segments") if isinstance(itinerary, dict) else None
    if not isinstance(segs, list):
        return []
    return [s for s in segs if isinstance(s, dict)]


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _iata(endpoint) -> str:
    return _text(endpoint.get("iataCode")) if isinstance(endpoint, dict) else ""


def _segment_text(seg: dict) -> str:
    dep = _iata(seg.get("departure"))
    arr = _iata(seg.get("arrival"))
    flight = _text(seg.get("carrierCode")) + _text(seg.get("number"))
    return f"{dep}→{arr} ({flight})"


def simplify_offer(offer: dict) -> RankedResult:
    """Turn one raw offer into a compact result, tolerating missing fields."""
    itineraries = offer.get("itineraries")
    first = itineraries[0] if isinstance(itineraries, list) and itineraries else {}
    segs = _segments(first)
    carriers = sorted({_text(s.get("carrierCode")) for s in segs} - {""})
    offer_id = offer.get("id")

    return RankedResult(
        price=_parse_price(offer),
        duration_text=format_duration(first.get("duration") if isinstance(first, dict) else None),
        stop_count=max(0, len(segs) - 1),
        route_text=ROUTE_SEPARATOR.join(_segment_text(s) for s in segs),
        carriers=carriers,
        source_offer_id=str(offer_id) if offer_id is not None else None,
    )


def rank_offers(offers: list, limit: int = MAX_RESULTS) -> list[RankedResult]:
    """
    Simplify and sort offers by price, then stop count.

    Pure and deterministic: sorted() is stable, so ties keep input order.
    Non-dict entries are skipped.
    """
    results = [simplify_offer(o) for o in offers or [] if isinstance(o, dict)]
    results = sorted(results, key=lambda r: (r.price, r.stop_count))
    return results[:limit]
