"""Query-parameter dependencies shared by the read endpoints."""
from __future__ import annotations

from typing import Callable, Optional, TypeVar

from fastapi import HTTPException, Query
from pydantic import ValidationError

from medifind.schemas.pharmacies import Location
from medifind.schemas.queries import COORDINATE_PAIR_ERROR, LocationParams, SearchQueryParams

ParamsT = TypeVar("ParamsT", bound=LocationParams)


def _build(factory: Callable[..., ParamsT], **values) -> ParamsT:
    """Validate query values, mapping an unpaired lat/lng to 400 and the rest to 422."""
    try:
        return factory(**values)
    except ValidationError as exc:
        errors = exc.errors(include_context=False, include_url=False)
        for error in errors:
            if error["type"] == COORDINATE_PAIR_ERROR:
                raise HTTPException(status_code=400, detail=error["msg"]) from exc
        raise HTTPException(status_code=422, detail=errors) from exc


async def search_params(
    q: str = Query(""),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    sort: str = Query("distance"),
    in_stock_only: bool = Query(False),
) -> SearchQueryParams:
    return _build(SearchQueryParams, q=q, lat=lat, lng=lng, sort=sort, in_stock_only=in_stock_only)


async def optional_location(
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
) -> Optional[Location]:
    return _build(LocationParams, lat=lat, lng=lng).location


__all__ = ["search_params", "optional_location"]
