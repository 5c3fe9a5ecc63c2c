#!/usr/bin/env python3
"""Scheduled catalog sync for all active merchants.

Behavior:
- For each active merchant with Shopify credentials (or the ids in SYNC_MERCHANT_IDS):
  - Fetch the full Shopify catalog and upsert it into staging
- One merchant failing does not stop the others; failures are reported at the end.

Run (local / cron):
  python -m scripts.sync_merchants

Optional env vars:
  SYNC_MERCHANT_IDS="1,2,5"
"""

import asyncio
import os
import sys
from dataclasses import asdict


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select  # noqa: E402

from catalog_hub.models import Merchant  # noqa: E402
from catalog_hub.services.catalog_sync import sync_merchant_catalog  # noqa: E402
from catalog_hub.services.errors import CatalogError  # noqa: E402
from catalog_hub.stores.postgres import close_db, get_session, init_db, ping_db  # noqa: E402
from catalog_hub.stores.redis import close_redis, init_redis  # noqa: E402


def _parse_ids_env(name: str) -> list[int]:
    raw = os.getenv(name, "")
    return [int(p.strip()) for p in raw.split(",") if p.strip()]


async def _merchant_ids_to_sync() -> list[int]:
    requested = _parse_ids_env("SYNC_MERCHANT_IDS")
    if requested:
        return requested
    async with get_session() as session:
        res = await session.execute(
            select(Merchant.id)
            .where(Merchant.is_active.is_(True), Merchant.shopify_configured.is_(True))
            .order_by(Merchant.id)
        )
        return list(res.scalars().all())


async def main() -> None:
    # Initialize shared connections (same as API lifespan, but for a one-off cron run)
    await init_db()
    await ping_db()
    try:
        await init_redis()
    except Exception as e:
        # Syncs still run without Redis, just without the per-merchant lock.
        print(f"Redis unavailable, syncing without locks: {e}", file=sys.stderr)

    try:
        merchant_ids = await _merchant_ids_to_sync()
        results: list[dict] = []
        failures: list[dict] = []
        for merchant_id in merchant_ids:
            try:
                result = await sync_merchant_catalog(merchant_id)
            except CatalogError as e:
                failures.append({"merchant_id": merchant_id, "code": e.code, "message": e.message})
                continue
            results.append(asdict(result))

        print(
            {
                "ok": not failures,
                "merchants": len(merchant_ids),
                "products_synced": sum(r["products_synced"] for r in results),
                "variants_synced": sum(r["variants_synced"] for r in results),
                "failures": failures,
            }
        )
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
