"""Type definitions and data models for the asset registry session layer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from .constants import RegistryEvent
from .exceptions import ValidationError
from .utils import normalise_id_hash, to_checksum

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .handle import ContractHandle


class NetworkStatus(Enum):
    """Connection status reported by the network guard."""

    OK = "ok"
    SWITCHING = "switching"
    UNSUPPORTED = "unsupported"
    UNAVAILABLE = "unavailable"


class SubscriptionState(Enum):
    """Lifecycle of an event subscription."""

    UNINITIALIZED = "uninitialized"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


class TxOutcomeKind(Enum):
    """Classified result of a submitted transaction."""

    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    REJECTED_BY_USER = "rejected_by_user"
    FAILED_UNKNOWN = "failed_unknown"


@dataclass(frozen=True)
class NetworkState:
    """Chain the wallet is on and whether it is usable."""

    chain_id: int | None
    label: str
    status: NetworkStatus

    @property
    def ok(self) -> bool:
        return self.status is NetworkStatus.OK


@dataclass(frozen=True)
class ContractSession:
    """A signer bound to the registry contract; valid until replaced."""

    address: str
    signer_identity: str
    handle: ContractHandle
    chain_id: int

    @property
    def closed(self) -> bool:
        return self.handle.closed


@dataclass(frozen=True)
class AssetRecord:
    """Read-only projection of an asset stored by the registry."""

    name: str
    id_hash: str
    cost: int
    owner: str
    registered_at: datetime
    exists: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id_hash": self.id_hash,
            "cost": self.cost,
            "owner": self.owner,
            "registered_at": self.registered_at.isoformat(),
            "exists": self.exists,
        }


@dataclass(frozen=True)
class AssetRegistered:
    """An asset was registered."""

    id_hash: str
    owner: str
    name: str
    cost: int
    observed_at: datetime
    block_number: int | None = None
    transaction_hash: str | None = None

    @property
    def kind(self) -> RegistryEvent:
        return RegistryEvent.REGISTERED


@dataclass(frozen=True)
class AssetTransferred:
    """An asset changed owner."""

    id_hash: str
    previous_owner: str
    new_owner: str
    observed_at: datetime
    block_number: int | None = None
    transaction_hash: str | None = None

    @property
    def kind(self) -> RegistryEvent:
        return RegistryEvent.TRANSFERRED


DomainEvent = AssetRegistered | AssetTransferred


@dataclass(frozen=True)
class TxOutcome:
    """Uniform result of a state-changing call."""

    kind: TxOutcomeKind
    detail: str | None = None
    tx_hash: str | None = None
    block_number: int | None = None

    @property
    def success(self) -> bool:
        return self.kind is TxOutcomeKind.CONFIRMED


@dataclass(frozen=True)
class RegisterAsset:
    """Register a new asset under the signer."""

    name: str
    cost: int

    function_name = "registerAsset"

    def contract_args(self) -> list[Any]:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Asset name must not be empty", field="name", value=self.name)

        if isinstance(self.cost, bool) or (
            isinstance(self.cost, float) and not self.cost.is_integer()
        ):
            raise ValidationError("Cost must be an integer", field="cost", value=self.cost)
        try:
            cost = int(self.cost)
        except (TypeError, ValueError):
            raise ValidationError("Cost must be an integer", field="cost", value=self.cost)
        if cost < 0:
            raise ValidationError("Cost cannot be negative", field="cost", value=self.cost)
        if cost > 2**256 - 1:
            raise ValidationError("Cost exceeds uint256 maximum", field="cost", value=self.cost)
        return [self.name, cost]


@dataclass(frozen=True)
class TransferAsset:
    """Hand an asset over to a new owner."""

    id_hash: str
    new_owner: str

    function_name = "transferAsset"

    def contract_args(self) -> list[Any]:
        id_hash = normalise_id_hash(self.id_hash)
        new_owner = to_checksum(self.new_owner, field="new_owner")
        return [bytes.fromhex(id_hash[2:]), new_owner]


Operation = RegisterAsset | TransferAsset

Unsubscribe = Callable[[], None]
