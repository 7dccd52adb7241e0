"""Airport search router — autocomplete backed by the Amadeus locations API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from fareflex.dependencies import get_amadeus
from fareflex.services.amadeus_client import AmadeusClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search")
async def search_airports(
    q: str = Query(""),
    limit: int = Query(8, ge=1, le=20),
    amadeus: AmadeusClient = Depends(get_amadeus),
):
    """Search airports by city, IATA code, or airport name."""
    keyword = q.strip()
    if not keyword:
        return {"results": []}
    try:
        return {"results": await amadeus.search_locations(keyword, limit)}
    except Exception as e:
        logger.error(f"Airport search failed for '{keyword}': {e}")
        raise HTTPException(status_code=500, detail=str(e) or "Airport search failed")
