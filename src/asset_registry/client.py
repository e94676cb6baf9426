"""Asset registry client wiring the wallet, network guard and contract session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .config import RegistryClientConfig
from .events import EventLog, EventObserver, EventSubscriptionManager
from .exceptions import ChainMismatch, SessionInvalidated
from .network import NetworkGuard
from .queries import AssetQueryService
from .session import ContractSessionFactory
from .transactions import TransactionOrchestrator
from .types import (
    AssetRecord,
    ContractSession,
    DomainEvent,
    NetworkState,
    TxOutcome,
    TxOutcomeKind,
    Unsubscribe,
)
from .wallet import LocalWalletProvider, WalletProvider

logger = logging.getLogger(__name__)


class AssetRegistryClient:
    """Register, transfer and watch registry assets through a wallet.

    ``connect()`` runs the full flow: network check (switching chains when
    needed), session creation and event subscription. A chain change
    reported by the wallet discards the session and its listeners; call
    ``connect()`` again to continue.
    """

    def __init__(
        self,
        config: RegistryClientConfig | None = None,
        provider: WalletProvider | None = None,
    ) -> None:
        config = (config or RegistryClientConfig()).with_defaulted_urls()
        self._config = config
        # only a wallet built here is closed by close()
        self._owned_wallet: LocalWalletProvider | None = None
        if provider is None:
            provider = self._owned_wallet = LocalWalletProvider(config)
        self._provider: WalletProvider = provider
        self._guard = NetworkGuard(self._provider, config.required_chain_id)
        self._sessions = ContractSessionFactory(
            self._provider,
            self._guard,
            config.contract_address,
            event_poll_interval=config.event_poll_interval,
        )
        self._events = EventSubscriptionManager(EventLog(max_entries=config.max_event_log))
        self._orchestrator = TransactionOrchestrator(receipt_timeout=config.receipt_timeout)
        self._queries = AssetQueryService()
        self._session: ContractSession | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._remove_network_observer = self._guard.add_observer(self._on_network_changed)

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    async def connect(self) -> ContractSession:
        state = await self._guard.ensure_required_chain()
        if not state.ok:
            raise ChainMismatch(
                f"Wallet is on {state.label}; switch to chain {self._config.required_chain_id}",
                required_chain_id=self._config.required_chain_id,
                current_chain_id=state.chain_id,
            )

        self.disconnect()
        session = await self._sessions.create_session()
        try:
            self._unsubscribe = await self._events.subscribe(session)
        except Exception:
            self._sessions.invalidate()
            raise

        self._session = session
        logger.info(
            "Connected to registry %s on %s as %s",
            session.address,
            state.label,
            session.signer_identity,
        )
        return session

    def disconnect(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._sessions.invalidate()
        self._session = None

    async def close(self) -> None:
        self.disconnect()
        self._remove_network_observer()
        self._guard.detach()
        if self._owned_wallet is not None:
            await self._owned_wallet.close()

    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def __aenter__(self) -> AssetRegistryClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def register_asset(self, name: str, cost: int) -> TxOutcome:
        try:
            session = self._require_session()
        except SessionInvalidated as exc:
            return TxOutcome(TxOutcomeKind.FAILED_UNKNOWN, detail=exc.message)
        return await self._orchestrator.register_asset(session, name, cost)

    async def transfer_asset(self, id_hash: str, new_owner: str) -> TxOutcome:
        try:
            session = self._require_session()
        except SessionInvalidated as exc:
            return TxOutcome(TxOutcomeKind.FAILED_UNKNOWN, detail=exc.message)
        return await self._orchestrator.transfer_asset(session, id_hash, new_owner)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_assets_of(self, address: str | None = None) -> list[str]:
        session = self._require_session()
        if address is None:
            return await self._queries.list_mine(session)
        return await self._queries.list_owned(session, address)

    async def get_asset(self, id_hash: str) -> AssetRecord:
        return await self._queries.fetch(self._require_session(), id_hash)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @property
    def events(self) -> list[DomainEvent]:
        return self._events.log.entries

    @property
    def event_log(self) -> EventLog:
        return self._events.log

    def add_event_observer(self, observer: EventObserver) -> Callable[[], None]:
        return self._events.log.add_observer(observer)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def config(self) -> RegistryClientConfig:
        return self._config

    @property
    def provider(self) -> WalletProvider:
        return self._provider

    @property
    def network_state(self) -> NetworkState:
        return self._guard.state

    @property
    def reload_required(self) -> bool:
        return self._guard.reload_required

    @property
    def session(self) -> ContractSession | None:
        return self._session

    def _require_session(self) -> ContractSession:
        if self._session is None or self._session.closed:
            if self._guard.reload_required:
                raise SessionInvalidated("Wallet chain changed; call connect() again")
            raise SessionInvalidated("Client is not connected; call connect() first")
        return self._session

    def _on_network_changed(self, state: NetworkState) -> None:
        if self._session is None:
            return
        logger.warning(
            "Chain changed to %s (%s); discarding session for %s",
            state.label,
            state.chain_id,
            self._session.signer_identity,
        )
        self.disconnect()
