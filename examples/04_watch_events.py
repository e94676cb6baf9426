"""Example: Follow registry events as they are emitted."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from asset_registry import (
    AssetRegistered,
    AssetRegistryClient,
    DomainEvent,
    RegistryClientConfig,
)

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

WATCH_SECONDS = float(os.getenv("WATCH_SECONDS", "120"))


def print_event(event: DomainEvent) -> None:
    if isinstance(event, AssetRegistered):
        print(f"[{event.observed_at:%H:%M:%S}] registered {event.name!r} ({event.id_hash}) "
              f"cost={event.cost} owner={event.owner}")
    else:
        print(f"[{event.observed_at:%H:%M:%S}] transferred {event.id_hash} "
              f"{event.previous_owner} -> {event.new_owner}")


async def main() -> None:
    """Print events for WATCH_SECONDS, reconnecting if the wallet changes chain."""

    config = RegistryClientConfig.from_env()
    registry = AssetRegistryClient(config)
    registry.add_event_observer(print_event)

    await registry.connect()
    try:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + WATCH_SECONDS
        while loop.time() < deadline:
            await asyncio.sleep(1)
            if registry.reload_required and not registry.is_connected():
                print("Chain changed; reconnecting")
                await registry.connect()
    finally:
        await registry.close()

    print(f"Observed {len(registry.events)} events")


if __name__ == "__main__":
    asyncio.run(main())
