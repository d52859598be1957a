"""Seed sports equipment and canteen menus."""

import asyncio
from decimal import Decimal

from campus_rentals.errors import InvalidRequestError
from campus_rentals.state import close_document_store, get_document_store
from campus_rentals.workflow import CatalogService

SEED_ACTOR = "seed-script"


async def seed_sports_equipment(catalog: CatalogService) -> None:
    """Seed rentable sports equipment."""
    print("Seeding sports equipment...")

    equipment = [
        ("bat-1", "Cricket Bat", "cricket", 5),
        ("ball-1", "Cricket Ball", "cricket", 20),
        ("pads-1", "Batting Pads", "cricket", 6),
        ("football-1", "Football", "football", 10),
        ("racket-1", "Badminton Racket", "badminton", 8),
        ("shuttle-1", "Shuttlecock Tube", "badminton", 15),
        ("tt-bat-1", "Table Tennis Bat", "table_tennis", 6),
    ]

    for item_id, name, sport, stock in equipment:
        await _add(catalog, item_id=item_id, name=name, owner_group=sport, total_stock=stock)

    print("✓ Sports equipment seeded successfully\n")


async def seed_canteen_menus(catalog: CatalogService) -> None:
    """Seed menu items for each canteen shop."""
    print("Seeding canteen menus...")

    menu = [
        ("samosa", "Samosa", "main-canteen", 40, "15.00"),
        ("chai", "Masala Chai", "main-canteen", 100, "10.00"),
        ("veg-thali", "Veg Thali", "main-canteen", 25, "80.00"),
        ("sandwich", "Grilled Sandwich", "juice-corner", 20, "45.00"),
        ("mango-shake", "Mango Shake", "juice-corner", 30, "60.00"),
        ("lime-soda", "Fresh Lime Soda", "juice-corner", 50, "30.00"),
    ]

    for item_id, name, shop, stock, price in menu:
        await _add(
            catalog,
            item_id=item_id,
            name=name,
            owner_group=shop,
            total_stock=stock,
            unit_price=Decimal(price),
        )

    print("✓ Canteen menus seeded successfully\n")


async def _add(catalog: CatalogService, **fields) -> None:
    try:
        item = await catalog.add_item(SEED_ACTOR, **fields)
    except InvalidRequestError:
        print(f"  - Skipped {fields['name']} (already exists)")
        return
    print(f"  ✓ Added {item.name} ({item.owner_group}, stock: {item.total_stock})")


async def main() -> None:
    """Run all seed functions."""
    print("\n" + "=" * 50)
    print("  Seeding Campus Catalog")
    print("=" * 50 + "\n")

    store = await get_document_store()
    catalog = CatalogService(store)

    await seed_sports_equipment(catalog)
    await seed_canteen_menus(catalog)

    await close_document_store()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
