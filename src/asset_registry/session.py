"""Contract session factory binding an authorised signer to the registry."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .abi import AssetRegistry_abi
from .config import DEFAULT_EVENT_POLL_INTERVAL
from .exceptions import ChainMismatch, ProviderUnavailable, SignerUnavailable, ValidationError
from .handle import ContractHandle
from .network import NetworkGuard
from .types import ContractSession
from .utils import to_checksum
from .wallet import WalletProvider

logger = logging.getLogger(__name__)


class ContractSessionFactory:
    """Produce contract sessions; the latest session supersedes earlier ones."""

    def __init__(
        self,
        provider: WalletProvider | None,
        guard: NetworkGuard,
        contract_address: str,
        *,
        abi: Sequence[dict[str, Any]] = AssetRegistry_abi,
        event_poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL,
    ) -> None:
        self._provider = provider
        self._guard = guard
        self._contract_address = to_checksum(contract_address, field="contract_address")
        self._abi = list(abi)
        self._event_poll_interval = event_poll_interval
        self._current: ContractSession | None = None

    @property
    def current(self) -> ContractSession | None:
        return self._current

    async def create_session(self) -> ContractSession:
        """Bind the wallet's authorised account to the registry contract.

        Raises:
            ProviderUnavailable: No wallet provider is present.
            ChainMismatch: The network guard has not reported ``OK``.
            SignerUnavailable: The wallet did not authorise an account.
        """
        if self._provider is None:
            raise ProviderUnavailable("No wallet provider found")

        state = self._guard.state
        if not state.ok:
            raise ChainMismatch(
                f"Wallet network is {state.status.value}; cannot create a session",
                required_chain_id=self._guard.required_chain_id,
                current_chain_id=state.chain_id,
            )

        try:
            accounts = await self._provider.request("eth_requestAccounts")
        except Exception as exc:
            raise SignerUnavailable(
                "Wallet did not authorise account access", details={"error": str(exc)}
            ) from exc

        if not accounts:
            raise SignerUnavailable("Wallet returned no accounts")
        try:
            signer = to_checksum(accounts[0], field="account")
        except ValidationError as exc:
            raise SignerUnavailable(
                "Wallet returned an invalid account", details={"account": accounts[0]}
            ) from exc

        web3 = self._provider.web3
        contract = web3.eth.contract(address=self._contract_address, abi=self._abi)
        handle = ContractHandle(
            self._provider,
            web3,
            contract,
            signer,
            poll_interval=self._event_poll_interval,
        )
        session = ContractSession(
            address=self._contract_address,
            signer_identity=signer,
            handle=handle,
            chain_id=self._guard.required_chain_id,
        )

        self.invalidate()
        self._current = session
        logger.info("Session created for %s on contract %s", signer, self._contract_address)
        return session

    def invalidate(self) -> None:
        """Close and discard the current session, removing its listeners."""

        if self._current is not None:
            self._current.handle.close()
            logger.debug("Session for %s invalidated", self._current.signer_identity)
        self._current = None

    def is_current(self, session: ContractSession) -> bool:
        return self._current is session and not session.closed
