"""Flight search router — one search request with automatic fallbacks."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from fareflex.config import settings
from fareflex.dependencies import get_orchestrator
from fareflex.schemas.search import FlightSearchRequest, SearchOutcome
from fareflex.services.errors import AuthError, QueryValidationError
from fareflex.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search", response_model=SearchOutcome)
async def search_flights(
    req: FlightSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Search offers, widening to nearby airports/dates and economy when needed."""
    params = req.model_dump(exclude_none=True)

    try:
        return await asyncio.wait_for(
            orchestrator.orchestrate_search(params),
            timeout=settings.search_request_timeout_seconds,
        )
    except QueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AuthError as e:
        logger.error(f"Flight search aborted, upstream auth failed: {e}")
        raise HTTPException(status_code=502, detail=f"Flight provider authentication failed: {e}")
    except asyncio.TimeoutError:
        logger.error(f"Flight search timed out for {params}")
        raise HTTPException(status_code=504, detail="Search timed out. Please try again.")
    except Exception as e:
        logger.error(f"Flight search failed for {params}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")
