"""Metro-area airport groups used to propose nearby-airport combos."""

# City code → airports served. The city code itself is also searchable.
METRO_AREAS: dict[str, list[str]] = {
    "NYC": ["JFK", "LGA", "EWR"],
    "WAS": ["DCA", "IAD", "BWI"],
    "CHI": ["ORD", "MDW"],
    "LAX": ["LAX", "BUR", "LGB", "SNA", "ONT"],
    "SFO": ["SFO", "SJC", "OAK"],
    "MIA": ["MIA", "FLL", "PBI"],
    "HOU": ["IAH", "HOU"],
    "DFW": ["DFW", "DAL"],
    "YTO": ["YYZ", "YTZ", "YHM"],
    "YMQ": ["YUL", "YHU"],
    "LON": ["LHR", "LGW", "LCY", "STN", "LTN"],
    "PAR": ["CDG", "ORY"],
    "MIL": ["MXP", "LIN", "BGY"],
    "ROM": ["FCO", "CIA"],
    "STO": ["ARN", "BMA"],
    "TYO": ["NRT", "HND"],
    "OSA": ["KIX", "ITM"],
    "SEL": ["ICN", "GMP"],
    "BJS": ["PEK", "PKX"],
    "SHA": ["PVG", "SHA"],
}

# Airports without a metro group that still have useful regional alternatives
REGIONAL_ALTERNATIVES: dict[str, list[str]] = {
    "RIC": ["ORF", "DCA", "IAD"],
    "ORF": ["RIC"],
    "BOS": ["PVD", "MHT"],
    "SAN": ["SNA"],
    "SEA": ["PAE"],
    "TPA": ["PIE", "SRQ"],
}


def _metro_of(code: str) -> str | None:
    for city, airports in METRO_AREAS.items():
        if code == city or code in airports:
            return city
    return None


def nearby_airports(code: str) -> list[str]:
    """Alternatives for a location code, nearest group first, excluding the code itself."""
    code = code.strip().upper()
    found: list[str] = []

    city = _metro_of(code)
    if city:
        found.extend(METRO_AREAS[city])
        if city not in METRO_AREAS[city]:
            found.append(city)
    found.extend(REGIONAL_ALTERNATIVES.get(code, []))

    seen = {code}
    result = []
    for alt in found:
        if alt not in seen:
            seen.add(alt)
            result.append(alt)
    return result
