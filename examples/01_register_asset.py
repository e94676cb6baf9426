"""Example: Register a new asset in the registry."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from asset_registry import AssetRegistryClient, RegistryClientConfig

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

ASSET_NAME = "Widget"
ASSET_COST = 500


async def main() -> None:
    """Register an asset and report how the transaction ended."""

    if not os.getenv("PRIVATE_KEY"):
        raise ValueError("PRIVATE_KEY not found in environment variables")

    config = RegistryClientConfig.from_env()
    async with AssetRegistryClient(config) as registry:
        print(f"Registering {ASSET_NAME!r} with cost {ASSET_COST}")
        outcome = await registry.register_asset(ASSET_NAME, ASSET_COST)

        if outcome.success:
            print(f"Asset registered in block {outcome.block_number} (tx {outcome.tx_hash})")
        else:
            print(f"Registration ended as {outcome.kind.value}: {outcome.detail or 'no reason'}")


if __name__ == "__main__":
    asyncio.run(main())
