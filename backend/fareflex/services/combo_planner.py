"""Combo planner — validates, scores and orders fallback queries (nearby airports, shifted dates).

Proposals come from an untrusted source (an LLM or the static metro table)
and are always decoded against a schema and validated before use.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from fareflex.data.metro_airports import nearby_airports
from fareflex.schemas.search import SearchQuery
from fareflex.services.llm_client import LLMClient
from fareflex.services.nlp_parser import strip_code_fences

logger = logging.getLogger(__name__)

MIN_COMBOS = 8
MAX_COMBOS = 12
DATE_WINDOW_DAYS = 2


class RawCombo(BaseModel):
    """One proposed combo, exactly as the proposer sent it."""

    origin: str = ""
    destination: str = ""
    depart: str = ""
    ret: str | None = None

    model_config = {"extra": "ignore"}

    @field_validator("origin", "destination", "depart", mode="before")
    @classmethod
    def _as_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("ret", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return str(v) if v else None


class ComboEnvelope(BaseModel):
    combos: list[RawCombo]


_combo_list = TypeAdapter(list[RawCombo])


@dataclass(frozen=True)
class Candidate:
    query: SearchQuery
    score: int


class ComboProposer(Protocol):
    async def propose(self, base: SearchQuery) -> list[RawCombo]: ...


def decode_combos(raw: str) -> list[RawCombo]:
    """
    Decode proposer output into combos.

    Accepts {"combos": [...]} or a bare array, with or without code fences,
    and as a last resort the first [...] block in the text. Never raises:
    anything that does not match the schema decodes to [].
    """
    if not raw:
        return []
    cleaned = strip_code_fences(raw)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        block = re.search(r"\[[\s\S]*\]", cleaned)
        if not block:
            return []
        try:
            payload = json.loads(block.group(0))
        except json.JSONDecodeError:
            return []

    try:
        if isinstance(payload, list):
            return _combo_list.validate_python(payload)
        return ComboEnvelope.model_validate(payload).combos
    except ValidationError as e:
        logger.warning(f"Discarding combos that do not match the schema: {e.error_count()} errors")
        return []


def _parse_day(text: str | None) -> date | None:
    try:
        return date.fromisoformat(text[:10]) if text else None
    except ValueError:
        return None


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def validate_candidates(
    combos: list[RawCombo],
    today: date | None = None,
    limit: int = MAX_COMBOS,
) -> list[dict]:
    """
    Normalize proposals and drop the unusable ones.

    Codes are trimmed and upper-cased, dates cut to YYYY-MM-DD. A combo is
    dropped when a code is empty, the depart date is unparseable or before
    `today` (UTC), or its return date is unparseable or before its depart
    date. The survivors are capped at `limit`, clamped into 8..12.
    """
    today = today or utc_today()
    limit = min(max(limit, MIN_COMBOS), MAX_COMBOS)
    valid = []

    for combo in combos:
        origin = combo.origin.strip().upper()
        destination = combo.destination.strip().upper()
        depart = _parse_day(combo.depart.strip())
        if not origin or not destination or depart is None or depart < today:
            continue

        ret = None
        if combo.ret:
            ret = _parse_day(combo.ret.strip())
            if ret is None or ret < depart:
                continue

        valid.append({
            "origin": origin,
            "destination": destination,
            "depart_date": depart,
            "return_date": ret,
        })

    return valid[:limit]


def score(candidate: SearchQuery, base: SearchQuery) -> int:
    """Lower is closer to the base query; changing an airport costs more than a day of drift."""
    value = 0
    if candidate.origin == base.origin:
        value -= 2
    if candidate.destination == base.destination:
        value -= 2
    value += abs((candidate.depart_date - base.depart_date).days)
    return value


class StaticComboProposer:
    """Nearby airports from the metro table crossed with a ±2 day window."""

    def __init__(self, window_days: int = DATE_WINDOW_DAYS):
        self.window_days = window_days

    async def propose(self, base: SearchQuery) -> list[RawCombo]:
        origins = [base.origin, *nearby_airports(base.origin)]
        destinations = [base.destination, *nearby_airports(base.destination)]

        combos = []
        for offset in range(-self.window_days, self.window_days + 1):
            shift = timedelta(days=offset)
            depart = base.depart_date + shift
            ret = base.return_date + shift if base.return_date else None
            for origin in origins:
                for destination in destinations:
                    if origin == destination:
                        continue
                    if offset == 0 and (origin, destination) == (base.origin, base.destination):
                        continue
                    rank = (
                        (0 if origin == base.origin else 2)
                        + (0 if destination == base.destination else 2)
                        + abs(offset)
                    )
                    combos.append((rank, RawCombo(
                        origin=origin,
                        destination=destination,
                        depart=depart.isoformat(),
                        ret=ret.isoformat() if ret else None,
                    )))

        combos.sort(key=lambda pair: pair[0])
        return [combo for _, combo in combos]


COMBO_SYSTEM_PROMPT = """You are a flight search strategist.
Return ONLY a JSON object: {"combos": [{"origin": "...", "destination": "...", "depart": "YYYY-MM-DD", "ret": "YYYY-MM-DD or null"}, ...]}
Rules:
- Propose up to 12 combos.
- Nearby airports only (NYC=JFK/LGA/EWR; RIC=DCA/IAD/ORF; LAX=BUR/LGB/SNA/ONT; SFO=SJC/OAK; LON=LHR/LGW/LCY; TYO=NRT/HND).
- Shift dates within ±2 days of base depart/ret.
- Do NOT include past dates; do NOT set ret < depart.
- No prose, no extra keys."""


class LLMComboProposer:
    """Asks the LLM for nearby-airport / shifted-date combos."""

    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def propose(self, base: SearchQuery) -> list[RawCombo]:
        user = (
            "Base:\n"
            f"origin={base.origin}\n"
            f"destination={base.destination}\n"
            f"depart={base.depart_date.isoformat()}\n"
            f"ret={base.return_date.isoformat() if base.return_date else 'null'}\n"
            f"today={utc_today().isoformat()}\n"
            'Return strictly: {"combos": [ ... ]}'
        )
        try:
            raw = await self._llm.complete_json(
                COMBO_SYSTEM_PROMPT, user, max_tokens=800, temperature=0.3
            )
        except Exception as e:
            logger.warning(f"LLM combo proposal failed: {e}")
            return []
        return decode_combos(raw)


class ComboPlanner:
    """Turns proposer output into scored, ordered candidate queries."""

    def __init__(self, proposer: ComboProposer, max_combos: int = MAX_COMBOS):
        self._proposer = proposer
        self._max_combos = max_combos

    async def plan(self, base: SearchQuery, today: date | None = None) -> list[Candidate]:
        try:
            proposals = await self._proposer.propose(base)
        except Exception as e:
            logger.warning(f"Combo proposer failed for {base.describe()}: {e}")
            return []

        seen = {base}
        candidates = []
        for fields in validate_candidates(proposals, today=today, limit=self._max_combos):
            try:
                query = base.with_changes(**fields)
            except ValidationError:
                logger.debug(f"Dropping combo with unusable codes: {fields}")
                continue
            if query in seen:
                continue
            seen.add(query)
            candidates.append(Candidate(query=query, score=score(query, base)))

        candidates.sort(key=lambda c: c.score)
        logger.info(f"Planned {len(candidates)} combos for {base.describe()}")
        return candidates
