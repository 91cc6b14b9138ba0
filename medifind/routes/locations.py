"""Geocoding helpers used when pharmacy owners register or move a store."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from medifind.schemas.pharmacies import GeocodeResponse, Location, ReverseGeocodeResponse
from medifind.services.knowledge import (
    GeminiKnowledgeClient,
    KnowledgeServiceError,
    get_knowledge_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["locations"])


def _require_service(service: Optional[GeminiKnowledgeClient]) -> GeminiKnowledgeClient:
    if service is None:
        raise HTTPException(status_code=503, detail="Geocoding is not configured")
    return service


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode(
    address: str = Query(..., min_length=1),
    service: Optional[GeminiKnowledgeClient] = Depends(get_knowledge_service),
) -> GeocodeResponse:
    client = _require_service(service)
    address = address.strip()
    if not address:
        raise HTTPException(status_code=400, detail="address must not be blank")
    try:
        location = await client.geocode_address(address)
    except KnowledgeServiceError as exc:
        logger.warning("Geocoding failed for %r: %s", address, exc)
        raise HTTPException(status_code=502, detail="Could not geocode address") from exc
    return GeocodeResponse(address=address, location=location)


@router.get("/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    service: Optional[GeminiKnowledgeClient] = Depends(get_knowledge_service),
) -> ReverseGeocodeResponse:
    client = _require_service(service)
    try:
        name = await client.reverse_geocode(lat, lng)
    except KnowledgeServiceError as exc:
        logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lng, exc)
        raise HTTPException(status_code=502, detail="Could not resolve location name") from exc
    return ReverseGeocodeResponse(location=Location(lat=lat, lng=lng), name=name)


__all__ = ["router"]
