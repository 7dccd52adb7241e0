"""Process-wide service context and the FastAPI dependencies that expose it."""

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from fareflex.config import Settings
from fareflex.services.amadeus_client import AmadeusClient
from fareflex.services.combo_planner import ComboPlanner, LLMComboProposer, StaticComboProposer
from fareflex.services.llm_client import LLMClient
from fareflex.services.nlp_parser import NLPParser
from fareflex.services.search_orchestrator import SearchOrchestrator, SearchPolicy
from fareflex.services.token_cache import TokenCache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Owns the shared HTTP client and token cache for the life of the process.

    Built once at startup; the token cache refreshes itself on expiry and is
    never torn down, only the HTTP client is closed at shutdown.
    """

    http: httpx.AsyncClient
    tokens: TokenCache
    amadeus: AmadeusClient
    orchestrator: SearchOrchestrator

    @classmethod
    def build(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "ServiceContext":
        http = httpx.AsyncClient(
            base_url=settings.amadeus_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )
        tokens = TokenCache(
            http,
            settings.amadeus_client_id,
            settings.amadeus_client_secret,
            skew_seconds=settings.token_refresh_skew_seconds,
        )
        amadeus = AmadeusClient(http, tokens)

        llm = LLMClient(openai_api_key=settings.openai_api_key, anthropic_api_key=settings.anthropic_api_key)
        if llm.enabled:
            proposer = LLMComboProposer(llm)
        else:
            logger.info("No LLM key configured — using static nearby-airport combos")
            proposer = StaticComboProposer()

        orchestrator = SearchOrchestrator(
            client=amadeus,
            planner=ComboPlanner(proposer, max_combos=settings.max_combos),
            parser=NLPParser(llm),
            policy=SearchPolicy.from_settings(settings),
        )
        return cls(http=http, tokens=tokens, amadeus=amadeus, orchestrator=orchestrator)

    async def aclose(self) -> None:
        await self.http.aclose()


def get_services(request: Request) -> ServiceContext:
    return request.app.state.services


def get_orchestrator(request: Request) -> SearchOrchestrator:
    return get_services(request).orchestrator


def get_amadeus(request: Request) -> AmadeusClient:
    return get_services(request).amadeus
