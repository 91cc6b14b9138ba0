from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from medifind.core.auth import AccessTier

# Distance reported when the caller supplied no location
NO_DISTANCE = -1.0


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class MedicineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    brands: list[str] = Field(default_factory=list)
    stock: int = Field(ge=0)


class StoreRecord(BaseModel):
    """A pharmacy owner's store as read from the identity store."""

    model_config = ConfigDict(frozen=True)

    id: str
    store_name: str
    address: str
    location: Location
    inventory: list[MedicineEntry] = Field(default_factory=list)


class PharmacyResult(BaseModel):
    name: str
    address: str
    location: Location
    distance: float
    medicine: MedicineEntry


class StoreSummary(BaseModel):
    id: str
    store_name: str
    address: str
    location: Location


class StoreViewResult(BaseModel):
    store: StoreSummary
    inventory: list[MedicineEntry]
    distance: float


class MedicineInfo(BaseModel):
    description: str
    primary_use: str
    common_forms: str


class StoreSearchResult(BaseModel):
    kind: Literal["store"] = "store"
    data: StoreViewResult


class MedicineSearchResult(BaseModel):
    kind: Literal["medicines"] = "medicines"
    data: list[PharmacyResult]
    query_text: str
    enrichment: Optional[MedicineInfo] = None


SearchResult = Annotated[
    Union[StoreSearchResult, MedicineSearchResult],
    Field(discriminator="kind"),
]


class SearchResponse(BaseModel):
    result: Optional[SearchResult] = None
    access_tier: AccessTier


class BasicStoreInfo(BaseModel):
    name: str
    address: str
    location: Location
    distance: float


class StoreListResponse(BaseModel):
    items: list[BasicStoreInfo]


class GeocodeResponse(BaseModel):
    address: str
    location: Location


class InventoryUpdate(BaseModel):
    """Full replacement of an owner's inventory."""

    items: list[MedicineEntry] = Field(default_factory=list)

    @field_validator("items")
    @classmethod
    def normalize_items(cls, items: list[MedicineEntry]) -> list[MedicineEntry]:
        seen: set[str] = set()
        normalized: list[MedicineEntry] = []
        for entry in items:
            name = " ".join(entry.name.split())
            if not name:
                raise ValueError("medicine name must not be blank")
            if name.casefold() in seen:
                raise ValueError(f"duplicate medicine name: {name}")
            seen.add(name.casefold())
            brands = [brand.strip() for brand in entry.brands if brand.strip()]
            normalized.append(MedicineEntry(name=name, brands=brands, stock=entry.stock))
        return normalized


class InventoryResponse(BaseModel):
    store: StoreSummary
    inventory: list[MedicineEntry]


class ReverseGeocodeResponse(BaseModel):
    location: Location
    name: str


__all__ = [
    "NO_DISTANCE",
    "Location",
    "MedicineEntry",
    "StoreRecord",
    "PharmacyResult",
    "StoreSummary",
    "StoreViewResult",
    "MedicineInfo",
    "StoreSearchResult",
    "MedicineSearchResult",
    "SearchResult",
    "SearchResponse",
    "BasicStoreInfo",
    "StoreListResponse",
    "GeocodeResponse",
    "ReverseGeocodeResponse",
    "InventoryUpdate",
    "InventoryResponse",
]
