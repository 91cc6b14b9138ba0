"""Access to pharmacy-owner store records.

Search only ever reads through ``StoreRepository``. Owners maintain their own
stock through ``InventoryWriter``, which is injected separately so the search
path never holds a writable handle.
"""
from __future__ import annotations

from typing import AsyncIterator, Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from medifind.db.models import InventoryItem, PharmacyStore
from medifind.db.session import async_transaction, get_async_session
from medifind.schemas.pharmacies import Location, MedicineEntry, StoreRecord


class StoreRepository(Protocol):
    async def list_stores(self) -> list[StoreRecord]:
        """Return every store with its inventory, in registration order."""
        ...


class InventoryWriter(Protocol):
    async def replace_inventory(
        self, owner_email: str, entries: list[MedicineEntry]
    ) -> Optional[StoreRecord]:
        """Swap a store's whole inventory; None when the owner has no store."""
        ...


class InMemoryStoreRepository:
    """Repository over a fixed list of records, kept in the order given."""

    def __init__(self, stores: Iterable[StoreRecord] = ()) -> None:
        self._stores = list(stores)

    async def list_stores(self) -> list[StoreRecord]:
        return list(self._stores)

    async def replace_inventory(
        self, owner_email: str, entries: list[MedicineEntry]
    ) -> Optional[StoreRecord]:
        for index, store in enumerate(self._stores):
            if store.id == owner_email:
                updated = store.model_copy(update={"inventory": list(entries)})
                self._stores[index] = updated
                return updated
        return None


def _to_entry(item: InventoryItem) -> MedicineEntry:
    return MedicineEntry(name=item.name, brands=list(item.brands or []), stock=item.stock)


def _to_record(store: PharmacyStore) -> StoreRecord:
    return StoreRecord(
        id=store.owner_email,
        store_name=store.store_name,
        address=store.address,
        location=Location(lat=store.lat, lng=store.lng),
        inventory=[_to_entry(item) for item in store.inventory],
    )


class SqlStoreRepository:
    """Repository backed by the pharmacy_stores / inventory_items tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_stores(self) -> list[StoreRecord]:
        query = (
            select(PharmacyStore)
            .options(selectinload(PharmacyStore.inventory))
            .order_by(PharmacyStore.id.asc())
        )
        result = await self._session.execute(query)
        return [_to_record(store) for store in result.scalars().all()]

    async def replace_inventory(
        self, owner_email: str, entries: list[MedicineEntry]
    ) -> Optional[StoreRecord]:
        query = (
            select(PharmacyStore)
            .options(selectinload(PharmacyStore.inventory))
            .where(PharmacyStore.owner_email == owner_email)
        )
        store = (await self._session.execute(query)).scalar_one_or_none()
        if store is None:
            return None

        # Old rows must be gone before re-adding a name, or the
        # (store_id, name) unique constraint trips inside one flush.
        store.inventory.clear()
        await self._session.flush()
        store.inventory.extend(
            InventoryItem(name=entry.name, brands=list(entry.brands), stock=entry.stock)
            for entry in entries
        )
        await self._session.flush()
        return _to_record(store)


async def get_store_repository() -> AsyncIterator[StoreRepository]:
    """FastAPI dependency yielding a session-bound repository."""
    async with get_async_session() as session:
        yield SqlStoreRepository(session)


async def get_inventory_writer() -> AsyncIterator[InventoryWriter]:
    """FastAPI dependency yielding a repository inside a committing transaction."""
    async with async_transaction() as session:
        yield SqlStoreRepository(session)


__all__ = [
    "StoreRepository",
    "InventoryWriter",
    "InMemoryStoreRepository",
    "SqlStoreRepository",
    "get_store_repository",
    "get_inventory_writer",
]
