"""Asset Registry - wallet session and event synchronisation layer.

This library connects to a user's wallet on the required chain, binds the
asset registry contract to the authorised signer, keeps a live subscription
to registry events and classifies the outcome of submitted transactions.
"""

from .client import AssetRegistryClient
from .config import RegistryClientConfig
from .events import EventLog, EventSubscription, EventSubscriptionManager, normalise_event
from .exceptions import (
    AssetRegistryError,
    ChainMismatch,
    NotFound,
    ProviderUnavailable,
    RemoteCallFailed,
    SessionInvalidated,
    SignerUnavailable,
    ValidationError,
    WalletRequestError,
)
from .handle import ContractHandle
from .network import NetworkGuard
from .queries import AssetQueryService, parse_asset_tuple
from .session import ContractSessionFactory
from .transactions import TransactionOrchestrator, classify_error
from .types import (
    AssetRecord,
    AssetRegistered,
    AssetTransferred,
    ContractSession,
    DomainEvent,
    NetworkState,
    NetworkStatus,
    RegisterAsset,
    SubscriptionState,
    TransferAsset,
    TxOutcome,
    TxOutcomeKind,
    Unsubscribe,
)
from .wallet import LocalWalletProvider, WalletProvider

__version__ = "0.1.0"

__all__ = [
    # Client and components
    "AssetRegistryClient",
    "NetworkGuard",
    "ContractSessionFactory",
    "ContractHandle",
    "EventSubscriptionManager",
    "EventSubscription",
    "EventLog",
    "TransactionOrchestrator",
    "AssetQueryService",
    "LocalWalletProvider",
    "WalletProvider",
    "RegistryClientConfig",
    # Types and enums
    "NetworkState",
    "NetworkStatus",
    "ContractSession",
    "AssetRecord",
    "AssetRegistered",
    "AssetTransferred",
    "DomainEvent",
    "RegisterAsset",
    "TransferAsset",
    "TxOutcome",
    "TxOutcomeKind",
    "SubscriptionState",
    "Unsubscribe",
    # Exceptions
    "AssetRegistryError",
    "ProviderUnavailable",
    "SignerUnavailable",
    "ChainMismatch",
    "RemoteCallFailed",
    "NotFound",
    "ValidationError",
    "SessionInvalidated",
    "WalletRequestError",
    # Helpers
    "classify_error",
    "normalise_event",
    "parse_asset_tuple",
]
