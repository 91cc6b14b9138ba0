from __future__ import annotations

from typing import Sequence

from medifind.core.auth import AccessTier
from medifind.schemas.pharmacies import PharmacyResult
from medifind.schemas.queries import ResultSort


def apply_result_preferences(
    results: Sequence[PharmacyResult],
    *,
    access_tier: AccessTier,
    sort: ResultSort = "distance",
    in_stock_only: bool = False,
) -> list[PharmacyResult]:
    """Apply member-only stock filtering and stock sorting to medicine results.

    Guests always get the search order back unchanged. The input is never
    modified, and applying the same preferences again gives the same list.
    """
    if access_tier is not AccessTier.MEMBER:
        return list(results)

    filtered = [item for item in results if item.medicine.stock > 0] if in_stock_only else list(results)
    if sort == "stock":
        # Stable, so equal stock keeps the nearest-first order
        filtered.sort(key=lambda item: item.medicine.stock, reverse=True)
    return filtered


__all__ = ["apply_result_preferences"]
