"""Search orchestrator — direct search with nearby-airport, shifted-date and cabin fallbacks."""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from fareflex.schemas.search import Cabin, SearchOutcome, SearchQuery
from fareflex.services.amadeus_client import AmadeusClient
from fareflex.services.combo_planner import Candidate, ComboPlanner
from fareflex.services.errors import AuthError, QueryValidationError
from fareflex.services.nlp_parser import NLPParser
from fareflex.services.resilience import race_with_limit, run_with_retry
from fareflex.services.result_ranker import rank_offers

logger = logging.getLogger(__name__)

NOTE_NO_OFFERS_EXPANDED = "No offers found after trying alternative airports and dates."
NOTE_NO_OFFERS_NOT_EXPANDED = "No offers found; alternative airports and dates were not tried."
NOTE_BUSINESS_DOWNGRADED = "Business class was unavailable; showing economy fares instead."


class SearchPhase(str, Enum):
    PRIMARY = "primary"
    EXPANDING = "expanding"
    DOWNGRADING = "downgrading"
    DONE = "done"


@dataclass(frozen=True)
class SearchPolicy:
    primary_attempts: int = 2
    primary_timeout: float = 9.5
    primary_backoff: float = 0.5
    combo_timeout: float = 7.5
    combo_concurrency: int = 4
    combo_max_results: int = 200
    downgrade_timeout: float = 3.75
    default_currency: str = "USD"
    primary_max_results: int = 50

    @classmethod
    def from_settings(cls, settings) -> "SearchPolicy":
        return cls(
            primary_attempts=settings.primary_attempts,
            primary_timeout=settings.primary_timeout_seconds,
            primary_backoff=settings.primary_backoff_seconds,
            combo_timeout=settings.combo_timeout_seconds,
            combo_concurrency=settings.combo_concurrency,
            combo_max_results=settings.combo_max_results,
            downgrade_timeout=settings.downgrade_timeout_seconds,
            default_currency=settings.default_currency,
            primary_max_results=settings.primary_max_results,
        )


def _first(fields: Mapping, *keys):
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return value
    return None


class SearchOrchestrator:
    """
    Runs one flight search request through its phases.

    PRIMARY -> EXPANDING -> DOWNGRADING -> DONE, each entered at most once,
    stopping at the first phase that yields offers. Phase failures count as
    misses; only AuthError (and bad input, before any phase) abort the request.
    """

    def __init__(
        self,
        client: AmadeusClient,
        planner: ComboPlanner,
        parser: NLPParser | None = None,
        policy: SearchPolicy | None = None,
    ):
        self._client = client
        self._planner = planner
        self._parser = parser
        self.policy = policy or SearchPolicy()

    async def orchestrate_search(self, params: Mapping) -> SearchOutcome:
        """Entry point: structured fields or free text in `query`."""
        query = await self.build_query(params)
        expand = params.get("expand", True) is not False
        return await self.search(query, expand=expand)

    async def build_query(self, params: Mapping) -> SearchQuery:
        """Turn request params (parsing free text first) into a validated query."""
        fields = {k: v for k, v in params.items() if v not in (None, "")}

        text = fields.pop("query", None)
        if text and self._parser is not None:
            parsed = await self._parser.parse(str(text))
            # Explicit structured fields win over whatever the parser inferred
            fields = {**parsed, **fields}

        origin = _first(fields, "origin", "from")
        destination = _first(fields, "destination", "to")
        depart = _first(fields, "depart", "depart_date")
        if not origin or not destination or not depart:
            raise QueryValidationError("Origin, destination and departure date are required.")

        ret = _first(fields, "ret", "return", "return_date")
        try:
            return SearchQuery(
                origin=origin,
                destination=destination,
                depart_date=str(depart)[:10],
                return_date=str(ret)[:10] if ret else None,
                adults=fields.get("adults", 1),
                cabin=fields.get("cabin", Cabin.ECONOMY),
                currency=fields.get("currency") or self.policy.default_currency,
                max_results=self.policy.primary_max_results,
            )
        except ValidationError as e:
            bad = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise QueryValidationError(
                f"Invalid search parameters ({bad}). Use 3-letter airport codes and YYYY-MM-DD dates."
            ) from e

    async def search(self, query: SearchQuery, expand: bool = True) -> SearchOutcome:
        start_time = time.monotonic()

        # 1. Primary: the query exactly as asked
        phase = SearchPhase.PRIMARY
        offers = await self._primary(query)
        if offers:
            return self._done(phase, start_time, offers, query, expanded=False)

        # 2. Expanding: nearby airports / shifted dates, raced
        expanded = False
        if expand:
            phase = SearchPhase.EXPANDING
            expanded = True
            won = await self._expand(query)
            if won:
                used, offers = won
                note = f"No offers for {query.describe()}; showing {used.describe()} instead."
                return self._done(phase, start_time, offers, used, expanded=True, note=note)

        # 3. Downgrading: business only, same route and dates in economy
        if query.cabin is Cabin.BUSINESS:
            phase = SearchPhase.DOWNGRADING
            economy = query.with_changes(cabin=Cabin.ECONOMY)
            offers = await self._downgrade(economy)
            if offers:
                return self._done(
                    phase, start_time, offers, economy, expanded=True, note=NOTE_BUSINESS_DOWNGRADED
                )

        note = NOTE_NO_OFFERS_EXPANDED if expanded else NOTE_NO_OFFERS_NOT_EXPANDED
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(f"Search {query.describe()} found nothing after {phase.value} ({elapsed_ms}ms)")
        return SearchOutcome(results=[], used_query=query, expanded_by_fallback=expanded, note=note)

    # --- Phases ---

    async def _primary(self, query: SearchQuery) -> list[dict]:
        try:
            return await run_with_retry(
                lambda: self._client.search_flight_offers(query),
                attempts=self.policy.primary_attempts,
                timeout=self.policy.primary_timeout,
                backoff=self.policy.primary_backoff,
                label=f"primary {query.describe()}",
            )
        except AuthError:
            raise
        except Exception as e:
            logger.warning(f"Primary search missed for {query.describe()}: {e!r}")
            return []

    async def _expand(self, query: SearchQuery) -> tuple[SearchQuery, list[dict]] | None:
        candidates = await self._planner.plan(query)
        if not candidates:
            return None

        def racer(candidate: Candidate):
            return lambda: self._try_candidate(candidate)

        return await race_with_limit(
            [racer(c) for c in candidates],
            self.policy.combo_concurrency,
            abort_on=(AuthError,),
        )

    async def _try_candidate(self, candidate: Candidate) -> tuple[SearchQuery, list[dict]] | None:
        query = candidate.query.with_changes(max_results=self.policy.combo_max_results)
        offers = await run_with_retry(
            lambda: self._client.search_flight_offers(query),
            attempts=1,
            timeout=self.policy.combo_timeout,
            label=f"combo {query.describe()}",
        )
        return (query, offers) if offers else None

    async def _downgrade(self, economy: SearchQuery) -> list[dict]:
        try:
            return await run_with_retry(
                lambda: self._client.search_flight_offers(economy),
                attempts=1,
                timeout=self.policy.downgrade_timeout,
                label=f"economy fallback {economy.describe()}",
            )
        except AuthError:
            raise
        except Exception as e:
            logger.warning(f"Economy fallback missed for {economy.describe()}: {e!r}")
            return []

    @staticmethod
    def _done(
        phase: SearchPhase,
        start_time: float,
        offers: list[dict],
        used: SearchQuery,
        *,
        expanded: bool,
        note: str | None = None,
    ) -> SearchOutcome:
        results = rank_offers(offers)
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"Search done in {phase.value} phase: {len(offers)} offers, "
            f"{len(results)} ranked, used {used.describe()} ({elapsed_ms}ms)"
        )
        return SearchOutcome(results=results, used_query=used, expanded_by_fallback=expanded, note=note)
