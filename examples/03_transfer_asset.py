"""Example: Transfer an asset to a new owner."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from asset_registry import AssetRegistryClient, RegistryClientConfig, TxOutcomeKind

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def main() -> None:
    """Hand ASSET_ID over to NEW_OWNER."""

    asset_id = os.getenv("ASSET_ID")
    if not asset_id:
        raise ValueError("ASSET_ID not found in environment variables")
    new_owner = os.getenv("NEW_OWNER")
    if not new_owner:
        raise ValueError("NEW_OWNER not found in environment variables")

    config = RegistryClientConfig.from_env()
    async with AssetRegistryClient(config) as registry:
        outcome = await registry.transfer_asset(asset_id, new_owner)

        if outcome.kind is TxOutcomeKind.CONFIRMED:
            print(f"Asset transferred (tx {outcome.tx_hash})")
        elif outcome.kind is TxOutcomeKind.REJECTED_BY_USER:
            print("Transaction rejected by user.")
        elif outcome.kind is TxOutcomeKind.REVERTED:
            print(f"Contract reverted: {outcome.detail or 'no reason given'}")
        else:
            print(f"Unexpected error: {outcome.detail}")


if __name__ == "__main__":
    asyncio.run(main())
