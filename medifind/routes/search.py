from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from medifind.core.auth import AccessTier, get_access_tier
from medifind.core.config import get_settings
from medifind.routes.params import search_params
from medifind.schemas.pharmacies import MedicineSearchResult, SearchResponse
from medifind.schemas.queries import SearchQueryParams
from medifind.services.knowledge import KnowledgeService, get_knowledge_service
from medifind.services.ranking import apply_result_preferences
from medifind.services.repository import StoreRepository, get_store_repository
from medifind.services.search import search_pharmacies

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
    params: SearchQueryParams = Depends(search_params),
    access_tier: AccessTier = Depends(get_access_tier),
    repository: StoreRepository = Depends(get_store_repository),
    knowledge: Optional[KnowledgeService] = Depends(get_knowledge_service),
) -> SearchResponse:
    settings = get_settings()
    result = await search_pharmacies(
        params.q,
        params.location,
        repository=repository,
        knowledge=knowledge,
        store_threshold=settings.store_match_threshold,
        medicine_threshold=settings.medicine_match_threshold,
    )

    if isinstance(result, MedicineSearchResult):
        result = result.model_copy(
            update={
                "data": apply_result_preferences(
                    result.data,
                    access_tier=access_tier,
                    sort=params.sort,
                    in_stock_only=params.in_stock_only,
                )
            }
        )

    return SearchResponse(result=result, access_tier=access_tier)


__all__ = ["router"]
