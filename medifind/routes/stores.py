from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from medifind.core.auth import require_owner
from medifind.routes.params import optional_location
from medifind.schemas.pharmacies import (
    InventoryResponse,
    InventoryUpdate,
    Location,
    StoreListResponse,
    StoreSummary,
)
from medifind.services.repository import (
    InventoryWriter,
    StoreRepository,
    get_inventory_writer,
    get_store_repository,
)
from medifind.services.search import list_all_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("", response_model=StoreListResponse)
async def all_stores(
    location: Optional[Location] = Depends(optional_location),
    repository: StoreRepository = Depends(get_store_repository),
) -> StoreListResponse:
    """Every registered pharmacy, nearest first when a location is given."""
    items = await list_all_stores(location, repository=repository)
    return StoreListResponse(items=items)


@router.put("/{owner_email}/inventory", response_model=InventoryResponse)
async def replace_inventory(
    owner_email: str,
    update: InventoryUpdate,
    current_owner: str = Depends(require_owner),
    writer: InventoryWriter = Depends(get_inventory_writer),
) -> InventoryResponse:
    """
    Replace the caller's store inventory.

    Owners may only edit the store registered to their own email. The
    list sent becomes the whole inventory, so omitted medicines are removed.
    """
    if current_owner.casefold() != owner_email.casefold():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    record = await writer.replace_inventory(current_owner, update.items)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    logger.info("Inventory for %s replaced with %d item(s)", record.store_name, len(record.inventory))
    return InventoryResponse(
        store=StoreSummary(
            id=record.id,
            store_name=record.store_name,
            address=record.address,
            location=record.location,
        ),
        inventory=record.inventory,
    )


__all__ = ["router"]
