"""Reset all workflow state (useful for testing)."""

import asyncio

from campus_rentals.state import close_document_store, get_document_store


async def reset_all_state() -> None:
    """Delete every catalog item, request, holding and return."""
    print("\n⚠️  WARNING: This will delete ALL workflow data!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")

    store = await get_document_store()
    await store.clear()
    await close_document_store()

    print("✓ All state cleared\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())
