from decimal import Decimal

import pytest

from fareflex.services.result_ranker import MAX_RESULTS, format_duration, rank_offers, simplify_offer

from fakes import build_offer


@pytest.mark.parametrize(
    "iso, expected",
    [
        ("PT5H30M", "5h 30m"),
        ("PT11H", "11h"),
        ("PT45M", "45m"),
        ("PT05H05M", "5h 5m"),
        ("P1DT", ""),
        ("P1DT2H", ""),
        ("PT", ""),
        ("PT2H30M15S", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_format_duration(iso, expected):
    assert format_duration(iso) == expected


def test_simplify_offer_builds_route_and_carriers():
    offer = build_offer(
        offer_id="7",
        price="412.30",
        duration="PT8H5M",
        segments=[("JFK", "ORD", "UA", "12"), ("ORD", "LAX", "AA", "340")],
    )

    result = simplify_offer(offer)

    assert result.price == Decimal("412.30")
    assert result.duration_text == "8h 5m"
    assert result.stop_count == 1
    assert result.route_text == "JFK→ORD (UA12) · ORD→LAX (AA340)"
    assert result.carriers == ["AA", "UA"]
    assert result.source_offer_id == "7"


def test_malformed_duration_does_not_raise():
    [result] = rank_offers([build_offer(duration="P1DT")])
    assert result.duration_text == ""


@pytest.mark.parametrize("price", [None, "", "abc", "NaN"])
def test_bad_price_is_zero(price):
    offer = build_offer()
    offer["price"]["grandTotal"] = price
    assert simplify_offer(offer).price == Decimal("0")


def test_offer_without_itineraries():
    result = simplify_offer({"id": "x", "price": {"grandTotal": "10"}})
    assert result.stop_count == 0
    assert result.route_text == ""
    assert result.carriers == []
    assert result.duration_text == ""


def test_non_dict_departure_and_arrival_are_blank():
    offer = build_offer("m", "50")
    segment = offer["itineraries"][0]["segments"][0]
    segment["departure"] = "JFK"
    segment["arrival"] = ["LAX"]

    [result] = rank_offers([offer])

    assert result.route_text == "→ (AA100)"
    assert result.source_offer_id == "m"


def test_non_string_carrier_codes_are_dropped():
    offer = build_offer(segments=[("JFK", "ORD", "UA", "12"), ("ORD", "LAX", "AA", "340")])
    offer["itineraries"][0]["segments"][0]["carrierCode"] = ["UA"]
    offer["itineraries"][0]["segments"][1]["carrierCode"] = {"code": "AA"}

    [result] = rank_offers([offer])

    assert result.carriers == []
    assert result.route_text == "JFK→ORD (12) · ORD→LAX (340)"


def test_sorts_by_price_then_stops_and_keeps_input_order_on_ties():
    one_stop = [("JFK", "ORD", "UA", "1"), ("ORD", "LAX", "UA", "2")]
    offers = [
        build_offer("a", "300"),
        build_offer("b", "200", segments=one_stop),
        build_offer("c", "200"),
        build_offer("d", "200"),
        build_offer("e", "100", segments=one_stop),
    ]

    ids = [r.source_offer_id for r in rank_offers(offers)]

    assert ids == ["e", "c", "d", "b", "a"]


def test_output_is_capped():
    offers = [build_offer(str(i), str(1000 - i)) for i in range(30)]
    results = rank_offers(offers)
    assert len(results) == MAX_RESULTS == 12
    assert results[0].source_offer_id == "29"


def test_is_deterministic_and_skips_junk():
    offers = [build_offer("a", "5"), "junk", None, build_offer("b", "1")]
    assert rank_offers(offers) == rank_offers(offers)
    assert [r.source_offer_id for r in rank_offers(offers)] == ["b", "a"]


def test_empty_input():
    assert rank_offers([]) == []
    assert rank_offers(None) == []
