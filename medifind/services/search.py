from __future__ import annotations

import logging
from typing import Optional

from medifind.core.config import get_settings
from medifind.schemas.pharmacies import (
    NO_DISTANCE,
    BasicStoreInfo,
    Location,
    MedicineInfo,
    MedicineSearchResult,
    PharmacyResult,
    StoreRecord,
    StoreSearchResult,
    StoreSummary,
    StoreViewResult,
)
from medifind.services.cache import cached_json
from medifind.services.geospatial import haversine_distance
from medifind.services.knowledge import KnowledgeService
from medifind.services.matching import (
    MEDICINE_MATCH_THRESHOLD,
    STORE_MATCH_THRESHOLD,
    match_medicine,
    match_store,
)
from medifind.services.repository import StoreRepository

logger = logging.getLogger(__name__)

SearchOutcome = Optional[StoreSearchResult | MedicineSearchResult]


def _distance_to(store: StoreRecord, user_location: Optional[Location]) -> float:
    if user_location is None:
        return NO_DISTANCE
    return haversine_distance(
        user_location.lat,
        user_location.lng,
        store.location.lat,
        store.location.lng,
    )


def sort_by_distance(items: list) -> list:
    """Stable ascending sort on ``.distance``.

    The no-location sentinel and real distances never come from the same
    search, so a mix means the caller is confused; refuse to order it.
    """
    located = [item.distance != NO_DISTANCE for item in items]
    if any(located) and not all(located):
        raise ValueError("cannot sort a mix of located and unlocated distances")
    return sorted(items, key=lambda item: item.distance)


def _store_view(store: StoreRecord, user_location: Optional[Location]) -> StoreSearchResult:
    return StoreSearchResult(
        data=StoreViewResult(
            store=StoreSummary(
                id=store.id,
                store_name=store.store_name,
                address=store.address,
                location=store.location,
            ),
            inventory=list(store.inventory),
            distance=_distance_to(store, user_location),
        )
    )


def _enrichment_cache_key(medicine_name: str) -> str:
    return f"medicine_info:{' '.join(medicine_name.lower().split())}"


async def fetch_enrichment(
    knowledge: Optional[KnowledgeService],
    medicine_name: str,
) -> Optional[MedicineInfo]:
    """Describe the queried medicine, degrading any failure to None."""
    if knowledge is None:
        return None

    async def producer() -> Optional[dict]:
        info = await knowledge.describe_medicine(medicine_name)
        return info.model_dump() if info is not None else None

    settings = get_settings()
    try:
        payload = await cached_json(
            _enrichment_cache_key(medicine_name),
            settings.api_cache_ttl_seconds,
            producer,
        )
        if payload is None:
            return None
        # Cached payloads may predate the current MedicineInfo shape
        return MedicineInfo.model_validate(payload)
    except Exception as exc:
        logger.warning("Medicine info unavailable for %r: %s", medicine_name, exc)
        return None


async def search_pharmacies(
    query: str,
    user_location: Optional[Location],
    *,
    repository: StoreRepository,
    knowledge: Optional[KnowledgeService] = None,
    store_threshold: float = STORE_MATCH_THRESHOLD,
    medicine_threshold: float = MEDICINE_MATCH_THRESHOLD,
) -> SearchOutcome:
    """Resolve a free-text query to a store view, a medicine view, or None.

    A query naming a store (score below ``store_threshold``) always yields
    that store's full inventory, even when it also resembles a medicine.
    Otherwise each store contributes its single best medicine match, ordered
    by distance when the user location is known.
    """
    search_term = query.strip()
    if not search_term:
        return None

    stores = await repository.list_stores()

    store_match = match_store(search_term, stores, store_threshold)
    if store_match is not None:
        logger.debug(
            "Query %r resolved to store %r (score %.3f)",
            search_term,
            store_match.item.store_name,
            store_match.score,
        )
        return _store_view(store_match.item, user_location)

    found: list[PharmacyResult] = []
    for store in stores:
        if not store.inventory:
            continue
        medicine_match = match_medicine(search_term, store.inventory, medicine_threshold)
        if medicine_match is None:
            continue
        found.append(
            PharmacyResult(
                name=store.store_name,
                address=store.address,
                location=store.location,
                distance=_distance_to(store, user_location),
                medicine=medicine_match.item,
            )
        )

    if not found:
        logger.debug("No store or medicine matched %r", search_term)
        return None

    if user_location is not None:
        found = sort_by_distance(found)

    enrichment = await fetch_enrichment(knowledge, search_term)

    logger.info("Query %r matched medicines in %d stores", search_term, len(found))
    return MedicineSearchResult(data=found, query_text=search_term, enrichment=enrichment)


async def list_all_stores(
    user_location: Optional[Location],
    *,
    repository: StoreRepository,
) -> list[BasicStoreInfo]:
    """Every store annotated with its distance, nearest first when located."""
    stores = await repository.list_stores()
    items = [
        BasicStoreInfo(
            name=store.store_name,
            address=store.address,
            location=store.location,
            distance=_distance_to(store, user_location),
        )
        for store in stores
    ]
    if user_location is not None:
        items = sort_by_distance(items)
    return items


__all__ = [
    "search_pharmacies",
    "list_all_stores",
    "fetch_enrichment",
    "sort_by_distance",
]
