"""Read-only asset queries against the registry contract."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .exceptions import NotFound, RemoteCallFailed, ValidationError
from .types import AssetRecord, ContractSession
from .utils import normalise_id_hash, timestamp_to_datetime, to_checksum

logger = logging.getLogger(__name__)

ASSET_TUPLE_FIELDS = ("name", "idHash", "cost", "owner", "registeredAt", "exists")


def parse_asset_tuple(raw: Sequence[Any]) -> AssetRecord:
    """Parse the ``getAsset`` response into an asset record.

    The fields are positional: name, idHash, cost, owner, registeredAt
    (seconds since the epoch) and exists.

    Raises:
        NotFound: The ``exists`` flag is false.
        RemoteCallFailed: The response does not have the expected shape.
    """
    if isinstance(raw, str | bytes) or not isinstance(raw, Sequence) or len(raw) != 6:
        raise RemoteCallFailed(
            "Unexpected getAsset response shape",
            function="getAsset",
            details={"response": raw, "expected": ASSET_TUPLE_FIELDS},
        )

    name, id_hash, cost, owner, registered_at, exists = raw
    if not exists:
        raise NotFound("Asset does not exist", id_hash=_id_text(id_hash))

    try:
        return AssetRecord(
            name=str(name),
            id_hash=_id_text(id_hash),
            cost=int(cost),
            owner=_owner(owner),
            registered_at=timestamp_to_datetime(registered_at),
            exists=True,
        )
    except (TypeError, ValueError, OverflowError, ValidationError) as exc:
        raise RemoteCallFailed(
            "Unable to decode getAsset response",
            function="getAsset",
            details={"response": list(raw), "error": str(exc)},
        ) from exc


class AssetQueryService:
    """Uncached reads: each call queries the ledger again."""

    async def list_owned(self, session: ContractSession, address: str) -> list[str]:
        owner = to_checksum(address, field="address")
        raw_ids = await session.handle.call("getAssetsOf", owner)
        ids = [normalise_id_hash(item) for item in raw_ids or []]
        logger.debug("Found %d assets for %s", len(ids), owner)
        return ids

    async def list_mine(self, session: ContractSession) -> list[str]:
        return await self.list_owned(session, session.signer_identity)

    async def fetch(self, session: ContractSession, id_hash: str) -> AssetRecord:
        normalised = normalise_id_hash(id_hash)
        raw = await session.handle.call("getAsset", bytes.fromhex(normalised[2:]))
        try:
            return parse_asset_tuple(raw)
        except NotFound as exc:
            raise NotFound("Asset does not exist", id_hash=normalised) from exc


def _owner(value: Any) -> str:
    try:
        return to_checksum(value, field="owner")
    except ValidationError:
        return str(value)


def _id_text(value: Any) -> str:
    try:
        return normalise_id_hash(value)
    except ValidationError:
        if isinstance(value, bytes | bytearray):
            return "0x" + bytes(value).hex()
        return str(value)
