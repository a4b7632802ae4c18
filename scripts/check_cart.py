#!/usr/bin/env python3
"""Print one owner's cart as each tier sees it, plus local store health.

Usage: python scripts/check_cart.py <owner_id>
"""
import asyncio
import sys

from cartsync.context import PersistenceContext
from cartsync.errors import CartSyncError


async def main(owner_id: str) -> int:
    context = await PersistenceContext.create()
    try:
        health = await context.check_local_store()
        print("=== LOCAL STORE ===")
        print(f"connected: {health.get('connected')}")
        print(f"message: {health.get('message')}")
        if health.get("error"):
            print(f"error: {health['error']}")

        for tier in context.server.tiers:
            print(f"\n=== {tier.name.upper()} CART ===")
            try:
                items = await tier.read(owner_id)
            except CartSyncError as e:
                print(f"  unavailable: {e}")
                continue
            if not items:
                print("  (empty)")
            for item in items:
                print(f"  {item.item_id:20s} x{item.quantity:<3d} {item.price:>8} {item.title}")
    finally:
        await context.close()
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    sys.exit(asyncio.run(main(sys.argv[1])))
