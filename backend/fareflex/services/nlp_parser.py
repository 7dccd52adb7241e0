"""NLP parser service — turns a free-text flight request into search fields via the LLM."""

import json
import logging
from datetime import datetime, timezone

from fareflex.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a flight planner. Extract a minimal JSON spec from the user's request.
Today's date is {today}.

Return ONLY JSON, no markdown, no preamble. Fields:
- origin: 3-letter IATA airport code if possible (e.g. JFK), else a city group like NYC
- destination: 3-letter IATA code or city group (LON, TYO)
- depart: YYYY-MM-DD
- ret: YYYY-MM-DD or null
- adults: integer >= 1 (default 1)
- cabin: ECONOMY | PREMIUM_ECONOMY | BUSINESS | FIRST (default ECONOMY)

Resolve relative dates ("next Friday") against today's date.
Leave out any field you cannot infer."""

FIELDS = ("origin", "destination", "depart", "ret", "adults", "cabin")


def strip_code_fences(raw: str) -> str:
    """Remove markdown ``` fences an LLM sometimes wraps JSON in."""
    raw = raw.strip()
    if raw.startswith("```"):
        lines = [line for line in raw.split("\n") if not line.strip().startswith("```")]
        raw = "\n".join(lines).strip()
    return raw


class NLPParser:
    """Parses free-text flight requests into partial search fields."""

    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def parse(self, text: str, max_retries: int = 1) -> dict:
        """
        Parse a natural language request.

        Returns a dict holding whichever of origin, destination, depart, ret,
        adults and cabin could be extracted. Returns {} when nothing usable
        came back; callers validate the fields like any structured input.
        """
        if not text or not text.strip() or not self._llm.enabled:
            return {}

        system = SYSTEM_PROMPT.format(today=datetime.now(timezone.utc).date().isoformat())

        raw = ""
        for attempt in range(max_retries + 1):
            try:
                raw = await self._llm.complete_json(system, text, max_tokens=300, temperature=0.2)
                parsed = json.loads(strip_code_fences(raw))
                if not isinstance(parsed, dict):
                    raise ValueError("LLM returned a non-object")
                return {k: parsed[k] for k in FIELDS if parsed.get(k) not in (None, "")}
            except json.JSONDecodeError as e:
                logger.warning(f"NLP parse attempt {attempt + 1}: invalid JSON response: {e}\nRaw: {raw[:500]}")
            except Exception as e:
                logger.error(f"NLP parse attempt {attempt + 1}: LLM error: {e}")

        return {}
