"""
locova.api.routes.places — Place lookup for the submission form
================================================================
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, HTTPException, Query, status

from locova.services.places_service import places_api_key, search_places

logger = logging.getLogger(__name__)

router = APIRouter(tags=["places"])


@router.get("/places")
async def find_places(q: str = Query("", max_length=200)):
    """Proxy a text search so the API key never reaches the client.

    Debouncing is the caller's job; each request is one upstream search.
    """
    transport = httpx.AsyncHTTPTransport(retries=1)
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        try:
            places = await search_places(q, api_key=places_api_key(), client=client)
        except httpx.HTTPError:
            logger.exception("Place search failed for %r", q)
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, "Place search unavailable")
    return {
        "places": [
            {
                "place_id": p.place_id,
                "name": p.name,
                "formatted_address": p.formatted_address,
                "lat": p.lat,
                "lng": p.lng,
            }
            for p in places
        ]
    }
