"""
locova.services.places_service — Place autocomplete search
===========================================================

Text search against the Google Places API over ``httpx``.
:class:`PlaceSearch` wraps it for a search box: each keystroke restarts a
debounce timer, and starting a new search cancels the one in flight so
only the latest query's results ever come back.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

PLACES_TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"


@dataclass(frozen=True, slots=True)
class Place:
    place_id: str
    name: str
    formatted_address: str | None = None
    lat: float | None = None
    lng: float | None = None

    @classmethod
    def from_json(cls, raw: dict) -> Place:
        location = (raw.get("geometry") or {}).get("location") or {}
        return cls(
            place_id=str(raw.get("place_id", "")),
            name=str(raw.get("name", "")),
            formatted_address=raw.get("formatted_address"),
            lat=location.get("lat"),
            lng=location.get("lng"),
        )


def places_api_key() -> str:
    return os.getenv("GOOGLE_PLACES_API_KEY", "").strip()


async def search_places(
    query: str,
    *,
    api_key: str,
    client: httpx.AsyncClient,
) -> list[Place]:
    """Run one text search.

    Returns ``[]`` without a request when the key is missing or the query
    is blank.  Raises :class:`httpx.HTTPStatusError` on a non-2xx reply.
    """
    if not api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not set; skipping place search.")
        return []
    cleaned = query.strip()
    if not cleaned:
        return []

    resp = await client.get(
        PLACES_TEXT_SEARCH_URL, params={"query": cleaned, "key": api_key}
    )
    resp.raise_for_status()
    data = resp.json()
    status = data.get("status")
    if status and status not in ("OK", "ZERO_RESULTS"):
        logger.warning(
            "Google Places non-OK status %s: %s", status, data.get("error_message")
        )
    return [Place.from_json(r) for r in data.get("results") or []]


class PlaceSearch:
    """Debounced, cancel-on-supersede search session.

    Usage::

        search = PlaceSearch(api_key, debounce_ms=350)
        results = await search.submit("coffee near")   # None if superseded
        await search.aclose()
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        debounce_ms: int = 350,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else places_api_key()
        self._debounce = max(debounce_ms, 0) / 1000
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=10, transport=httpx.AsyncHTTPTransport(retries=1)
        )
        self._pending: asyncio.Task[list[Place]] | None = None

    async def _debounced(self, query: str) -> list[Place]:
        await asyncio.sleep(self._debounce)
        return await search_places(query, api_key=self._api_key, client=self._client)

    async def submit(self, query: str) -> list[Place] | None:
        """Search for *query* after the debounce window.

        Returns None when a newer :meth:`submit` superseded this one.
        """
        previous = self._pending
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self._debounced(query))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._pending is not task:
                logger.debug("Place search for %r superseded", query)
                return None
            raise

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    async def aclose(self) -> None:
        self.cancel()
        if self._owns_client:
            await self._client.aclose()
