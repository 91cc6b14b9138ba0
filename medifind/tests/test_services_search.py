"""Tests for the search orchestrator."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from medifind.schemas.pharmacies import (
    NO_DISTANCE,
    Location,
    MedicineEntry,
    MedicineSearchResult,
    StoreSearchResult,
)
from medifind.services.knowledge import KnowledgeServiceError
from medifind.services.repository import InMemoryStoreRepository
from medifind.services.search import list_all_stores, search_pharmacies, sort_by_distance
from medifind.tests.conftest import FakeKnowledgeService, make_store

USER = Location(lat=10.0, lng=10.0)


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\t\n"])
    async def test_blank_query_returns_none_without_calls(self, query, repository, knowledge):
        result = await search_pharmacies(query, USER, repository=repository, knowledge=knowledge)

        assert result is None
        assert repository.calls == 0
        assert knowledge.calls == []


class TestStoreLookup:
    @pytest.mark.asyncio
    async def test_store_name_returns_full_inventory(self, repository, city_pharmacy, knowledge):
        result = await search_pharmacies("City Pharm", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, StoreSearchResult)
        assert result.kind == "store"
        assert result.data.store.store_name == "City Pharmacy"
        assert result.data.store.id == city_pharmacy.id
        assert result.data.inventory == city_pharmacy.inventory
        assert result.data.distance == pytest.approx(0.0)
        assert knowledge.calls == []

    @pytest.mark.asyncio
    async def test_store_match_wins_over_identically_named_medicine(self, knowledge):
        store = make_store(
            "City Pharmacy",
            10,
            10,
            [MedicineEntry(name="City Pharm", brands=[], stock=4)],
        )
        repository = InMemoryStoreRepository([store])

        result = await search_pharmacies("City Pharm", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, StoreSearchResult)
        assert [item.name for item in result.data.inventory] == ["City Pharm"]

    @pytest.mark.asyncio
    async def test_store_view_without_location_uses_sentinel(self, repository):
        result = await search_pharmacies("Town Pharmacy", None, repository=repository)

        assert isinstance(result, StoreSearchResult)
        assert result.data.distance == NO_DISTANCE

    @pytest.mark.asyncio
    async def test_store_threshold_is_configurable(self, repository):
        # With a zero threshold nothing can qualify as a store lookup
        result = await search_pharmacies(
            "City Pharmacy",
            USER,
            repository=repository,
            store_threshold=0.0,
        )
        assert not isinstance(result, StoreSearchResult)


class TestMedicineSearch:
    @pytest.mark.asyncio
    async def test_two_store_scenario(self, city_pharmacy, town_pharmacy, knowledge, paracetamol_info):
        repository = InMemoryStoreRepository([city_pharmacy, town_pharmacy])

        result = await search_pharmacies("paracetamol", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, MedicineSearchResult)
        assert result.kind == "medicines"
        assert [item.name for item in result.data] == ["City Pharmacy", "Town Pharmacy"]
        assert result.data[0].distance == pytest.approx(0.0)
        assert result.data[1].distance == pytest.approx(1.095, abs=0.01)
        assert [item.medicine.stock for item in result.data] == [5, 0]
        assert result.query_text == "paracetamol"
        assert result.enrichment == paracetamol_info

    @pytest.mark.asyncio
    async def test_results_sorted_by_distance(self, repository):
        result = await search_pharmacies("paracetamol", USER, repository=repository)

        distances = [item.distance for item in result.data]
        assert distances == sorted(distances)
        # Registration order had the far store first
        assert result.data[-1].name == "Lakeside Drugstore"

    @pytest.mark.asyncio
    async def test_without_location_keeps_registration_order(self, repository):
        result = await search_pharmacies("paracetamol", None, repository=repository)

        assert [item.name for item in result.data] == ["Lakeside Drugstore", "City Pharmacy", "Town Pharmacy"]
        assert all(item.distance == NO_DISTANCE for item in result.data)

    @pytest.mark.asyncio
    async def test_one_result_per_store(self):
        store = make_store(
            "Corner Chemist",
            10,
            10,
            [
                MedicineEntry(name="Paracetamol Syrup", brands=[], stock=1),
                MedicineEntry(name="Paracetamol", brands=["Calpol"], stock=8),
            ],
        )
        repository = InMemoryStoreRepository([store])

        result = await search_pharmacies("paracetamol", USER, repository=repository)

        assert len(result.data) == 1
        assert result.data[0].medicine.name == "Paracetamol"
        assert result.data[0].medicine.stock == 8

    @pytest.mark.asyncio
    async def test_brand_query(self, repository):
        result = await search_pharmacies("Calpol", USER, repository=repository)

        assert isinstance(result, MedicineSearchResult)
        assert [item.name for item in result.data] == ["City Pharmacy"]
        assert result.data[0].medicine.name == "Paracetamol"

    @pytest.mark.asyncio
    async def test_query_is_trimmed(self, repository):
        result = await search_pharmacies("  amoxicillin  ", USER, repository=repository)

        assert result.query_text == "amoxicillin"
        assert [item.name for item in result.data] == ["Lakeside Drugstore"]

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, repository, knowledge):
        result = await search_pharmacies("omeprazole", USER, repository=repository, knowledge=knowledge)

        assert result is None
        assert knowledge.calls == []

    @pytest.mark.asyncio
    async def test_stores_without_inventory_are_skipped(self):
        empty = make_store("Empty Shelf", 10, 10, [])
        stocked = make_store("Stocked Shelf", 10, 10.5, [MedicineEntry(name="Ibuprofen", stock=3)])
        repository = InMemoryStoreRepository([empty, stocked])

        result = await search_pharmacies("ibuprofen", USER, repository=repository)

        assert [item.name for item in result.data] == ["Stocked Shelf"]

    @pytest.mark.asyncio
    async def test_repeated_search_is_identical(self, repository):
        first = await search_pharmacies("paracetamol", USER, repository=repository)
        second = await search_pharmacies("paracetamol", USER, repository=repository)

        assert first.data == second.data

    @pytest.mark.asyncio
    async def test_records_are_not_mutated(self, repository, sample_stores):
        before = [store.model_copy(deep=True) for store in sample_stores]

        await search_pharmacies("paracetamol", USER, repository=repository)

        assert sample_stores == before


class TestEnrichment:
    @pytest.mark.asyncio
    async def test_unknown_medicine_has_null_enrichment(self, repository):
        knowledge = FakeKnowledgeService({})

        result = await search_pharmacies("ibuprofen", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, MedicineSearchResult)
        assert result.enrichment is None
        assert knowledge.calls == ["ibuprofen"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [KnowledgeServiceError("timeout"), RuntimeError("boom")],
    )
    async def test_failure_degrades_to_null(self, repository, error, caplog):
        knowledge = FakeKnowledgeService(error=error)

        result = await search_pharmacies("paracetamol", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, MedicineSearchResult)
        assert len(result.data) == 3
        assert result.enrichment is None
        assert "Medicine info unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_no_service_configured(self, repository):
        result = await search_pharmacies("paracetamol", USER, repository=repository, knowledge=None)

        assert result.enrichment is None

    @pytest.mark.asyncio
    async def test_enrichment_uses_cache_when_enabled(self, repository, knowledge, test_settings, paracetamol_info):
        cached = AsyncMock(return_value=paracetamol_info.model_dump())
        with patch.object(test_settings, "api_cache_ttl_seconds", 120), patch(
            "medifind.services.search.cached_json", cached
        ):
            result = await search_pharmacies("Paracetamol", USER, repository=repository, knowledge=knowledge)

        assert result.enrichment == paracetamol_info
        key, ttl, _ = cached.await_args.args
        assert key == "medicine_info:paracetamol"
        assert ttl == 120

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stale", [{"description": "x"}, ["a"], "text", 42])
    async def test_wrong_shaped_cached_value_degrades_to_null(self, repository, knowledge, stale, caplog):
        with patch("medifind.services.search.cached_json", AsyncMock(return_value=stale)):
            result = await search_pharmacies("paracetamol", USER, repository=repository, knowledge=knowledge)

        assert isinstance(result, MedicineSearchResult)
        assert len(result.data) == 3
        assert result.enrichment is None
        assert "Medicine info unavailable" in caplog.text


class TestListAllStores:
    @pytest.mark.asyncio
    async def test_sorted_by_distance_with_location(self, repository):
        stores = await list_all_stores(USER, repository=repository)

        assert [store.name for store in stores] == ["City Pharmacy", "Town Pharmacy", "Lakeside Drugstore"]
        assert stores[0].distance == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_registration_order_without_location(self, repository):
        stores = await list_all_stores(None, repository=repository)

        assert [store.name for store in stores] == ["Lakeside Drugstore", "City Pharmacy", "Town Pharmacy"]
        assert all(store.distance == NO_DISTANCE for store in stores)

    @pytest.mark.asyncio
    async def test_empty_repository(self):
        assert await list_all_stores(USER, repository=InMemoryStoreRepository()) == []


class TestSortByDistance:
    def test_rejects_mixed_sentinel_and_real_distances(self):
        class Item:
            def __init__(self, distance):
                self.distance = distance

        with pytest.raises(ValueError, match="mix"):
            sort_by_distance([Item(2.0), Item(NO_DISTANCE)])

    def test_equal_distances_keep_order(self):
        class Item:
            def __init__(self, name, distance):
                self.name = name
                self.distance = distance

        items = [Item("a", 1.0), Item("b", 0.5), Item("c", 1.0)]
        assert [item.name for item in sort_by_distance(items)] == ["b", "a", "c"]
