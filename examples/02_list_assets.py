"""Example: List the assets owned by the connected wallet."""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from asset_registry import AssetRegistryClient, NotFound, RegistryClientConfig

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def main() -> None:
    """Print every asset id owned by an address (default: the signer) with its details."""

    owner = sys.argv[1] if len(sys.argv) > 1 else None
    config = RegistryClientConfig.from_env()

    async with AssetRegistryClient(config) as registry:
        ids = await registry.get_assets_of(owner)
        if not ids:
            print("No assets found for this wallet.")
            return

        for id_hash in ids:
            try:
                asset = await registry.get_asset(id_hash)
            except NotFound:
                print(f"{id_hash}: no longer exists")
                continue
            print(f"{asset.id_hash}")
            print(f"  name:          {asset.name}")
            print(f"  cost:          {asset.cost}")
            print(f"  owner:         {asset.owner}")
            print(f"  registered at: {asset.registered_at:%Y-%m-%d %H:%M:%S %Z}")


if __name__ == "__main__":
    asyncio.run(main())
