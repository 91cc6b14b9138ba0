from __future__ import annotations

import asyncio
import logging

from sqlalchemy import delete

from medifind.core.logging import configure_logging
from medifind.db.models import InventoryItem, PharmacyStore
from medifind.db.session import async_transaction, init_models

logger = logging.getLogger(__name__)

DEMO_STORES = [
    {
        "owner_email": "owner@citypharmacy.example",
        "store_name": "City Pharmacy",
        "address": "12 MG Road, Bengaluru",
        "lat": 12.9756,
        "lng": 77.6050,
        "inventory": [
            ("Paracetamol", ["Calpol", "Dolo 650", "Crocin"], 40),
            ("Ibuprofen", ["Brufen", "Advil"], 12),
            ("Cetirizine", ["Zyrtec", "Okacet"], 0),
        ],
    },
    {
        "owner_email": "owner@townpharmacy.example",
        "store_name": "Town Pharmacy",
        "address": "4 Brigade Road, Bengaluru",
        "lat": 12.9716,
        "lng": 77.6070,
        "inventory": [
            ("Paracetamol", ["Crocin"], 0),
            ("Amoxicillin", ["Mox", "Novamox"], 25),
            ("Omeprazole", ["Omez"], 18),
        ],
    },
    {
        "owner_email": "owner@wellnesschemist.example",
        "store_name": "Wellness Chemist",
        "address": "88 Indiranagar 100ft Road, Bengaluru",
        "lat": 12.9784,
        "lng": 77.6408,
        "inventory": [
            ("Metformin", ["Glycomet"], 30),
            ("Azithromycin", ["Azithral", "Zithromax"], 7),
            ("Paracetamol", ["Dolo 650"], 100),
        ],
    },
]


async def seed() -> None:
    await init_models()
    async with async_transaction() as session:
        await session.execute(delete(InventoryItem))
        await session.execute(delete(PharmacyStore))
        for entry in DEMO_STORES:
            store = PharmacyStore(
                owner_email=entry["owner_email"],
                store_name=entry["store_name"],
                address=entry["address"],
                lat=entry["lat"],
                lng=entry["lng"],
                inventory=[
                    InventoryItem(name=name, brands=brands, stock=stock)
                    for name, brands, stock in entry["inventory"]
                ],
            )
            session.add(store)
            # Flush per store so autoincrement ids follow registration order
            await session.flush()
    logger.info("Seeded %d demo pharmacies", len(DEMO_STORES))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed())
