"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 5 sample customers
  - 4 driver accounts (3 approved, 1 awaiting approval)
  - vehicle tariffs for van, light_truck and truck
  - the default cancellation fee table
"""

import asyncio

from sqlalchemy import func, select

from cargo_dispatch.config import settings
from cargo_dispatch.domain.cancellation import DEFAULT_CANCELLATION_FEES
from cargo_dispatch.infrastructure.database import create_engine, create_session_factory
from cargo_dispatch.infrastructure.models import DriverModel, UserModel
from cargo_dispatch.infrastructure.repositories import PricingRepository


CUSTOMERS = [
    {"name": "Ayse Yilmaz", "phone_number": "+905550000001"},
    {"name": "Mehmet Kaya", "phone_number": "+905550000002"},
    {"name": "Zeynep Demir", "phone_number": "+905550000003"},
    {"name": "Emre Sahin", "phone_number": "+905550000004"},
    {"name": "Elif Celik", "phone_number": "+905550000005"},
]

DRIVERS = [
    {"name": "Burak Ozturk", "phone_number": "+905551000001", "vehicle_type": "van",
     "vehicle_plate": "34 ABC 101", "vehicle_model": "Ford Transit", "approved": True},
    {"name": "Cem Arslan", "phone_number": "+905551000002", "vehicle_type": "light_truck",
     "vehicle_plate": "34 ABC 102", "vehicle_model": "Isuzu NPR", "approved": True},
    {"name": "Deniz Koc", "phone_number": "+905551000003", "vehicle_type": "truck",
     "vehicle_plate": "34 ABC 103", "vehicle_model": "Mercedes Atego", "approved": True},
    {"name": "Hakan Aydin", "phone_number": "+905551000004", "vehicle_type": "van",
     "vehicle_plate": "34 ABC 104", "vehicle_model": "Fiat Ducato", "approved": False},
]

VEHICLE_PRICING = [
    {"vehicle_type": "van", "base_price": 50.0, "price_per_km": 5.0, "labor_price": 25.0},
    {"vehicle_type": "light_truck", "base_price": 80.0, "price_per_km": 7.0, "labor_price": 30.0},
    {"vehicle_type": "truck", "base_price": 150.0, "price_per_km": 10.0, "labor_price": 40.0},
]


async def seed(session_factory):
    async with session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(UserModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Customers ─────────────────────────────────────────────────
        for c in CUSTOMERS:
            session.add(UserModel(name=c["name"], phone_number=c["phone_number"]))
        await session.flush()
        print(f"  Created {len(CUSTOMERS)} customers")

        # ── Drivers ───────────────────────────────────────────────────
        for d in DRIVERS:
            user = UserModel(name=d["name"], phone_number=d["phone_number"], user_type="driver")
            session.add(user)
            await session.flush()
            session.add(
                DriverModel(
                    user_id=user.id,
                    vehicle_type=d["vehicle_type"],
                    vehicle_plate=d["vehicle_plate"],
                    vehicle_model=d["vehicle_model"],
                    is_available=True,
                    is_approved=d["approved"],
                )
            )
        await session.flush()
        print(f"  Created {len(DRIVERS)} drivers")

        # ── Back office ───────────────────────────────────────────────
        pricing = PricingRepository(session)
        for p in VEHICLE_PRICING:
            await pricing.upsert_vehicle_pricing(
                p["vehicle_type"],
                base_price=p["base_price"],
                price_per_km=p["price_per_km"],
                labor_price=p["labor_price"],
            )
        print(f"  Created {len(VEHICLE_PRICING)} vehicle tariffs")

        for rule in DEFAULT_CANCELLATION_FEES:
            await pricing.upsert_fee_rule(rule)
        print(f"  Created {len(DEFAULT_CANCELLATION_FEES)} cancellation fee rows")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    engine = create_engine(settings)
    await seed(create_session_factory(engine))
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
