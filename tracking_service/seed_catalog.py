"""
Database seeding script for the catalog mirror tables.

Creates a few Colombo-area routes and vehicles so positions can be submitted
in development before the catalog sync is wired up.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracking_service.app.db.session import AsyncSessionLocal, Base, engine
from tracking_service.app.models.catalog import RouteRecord, VehicleRecord
from tracking_service.app.models.enums import VehicleStatus
from sqlalchemy import select

ROUTES = [
    {"id": "route-138", "name": "Pettah - Homagama", "route_number": "138",
     "origin": "Pettah", "destination": "Homagama"},
    {"id": "route-177", "name": "Kollupitiya - Kaduwela", "route_number": "177",
     "origin": "Kollupitiya", "destination": "Kaduwela"},
]

VEHICLES = [
    {"id": "bus-001", "registration_number": "NB-1234", "capacity": 54,
     "status": VehicleStatus.ACTIVE, "model": "Ashok Leyland Viking"},
    {"id": "bus-002", "registration_number": "NC-5678", "capacity": 54,
     "status": VehicleStatus.ACTIVE, "model": "Tata LP 1510"},
    {"id": "bus-003", "registration_number": "ND-9012", "capacity": 35,
     "status": VehicleStatus.MAINTENANCE, "model": "Isuzu Journey"},
]


async def seed_catalog():
    """
    Seed the vehicles and routes tables.

    Skips seeding when the first vehicle already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting catalog seeding...")

        result = await db.execute(
            select(VehicleRecord).where(VehicleRecord.id == VEHICLES[0]["id"])
        )
        if result.scalar_one_or_none():
            print("ℹ️  Catalog already seeded, skipping")
            return

        for route in ROUTES:
            db.add(RouteRecord(**route))
            print(f"✅ Created route {route['route_number']} ({route['name']})")

        for vehicle in VEHICLES:
            db.add(VehicleRecord(**vehicle))
            print(f"✅ Created vehicle {vehicle['id']} ({vehicle['registration_number']}, {vehicle['status'].value})")

        await db.commit()
        print("\n🎉 Catalog seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_catalog())
