"""Network guard keeping the wallet on the required chain."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .constants import get_network_label
from .exceptions import AssetRegistryError, ProviderUnavailable
from .types import NetworkState, NetworkStatus
from .utils import chain_id_to_hex, parse_chain_id
from .wallet import WalletProvider

logger = logging.getLogger(__name__)

NetworkObserver = Callable[[NetworkState], None]

CHAIN_CHANGED = "chainChanged"


class NetworkGuard:
    """Detect the wallet, read its chain and switch it to the required one."""

    def __init__(self, provider: WalletProvider | None, required_chain_id: int) -> None:
        self._provider = provider
        self._required_chain_id = required_chain_id
        self._state = NetworkState(
            chain_id=None, label="Unavailable", status=NetworkStatus.UNAVAILABLE
        )
        self._listener_installed = False
        self._reload_required = False
        self._observers: list[NetworkObserver] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> NetworkState:
        return self._state

    @property
    def required_chain_id(self) -> int:
        return self._required_chain_id

    @property
    def reload_required(self) -> bool:
        """True once the chain changed under an established connection."""
        return self._reload_required

    @property
    def listener_installed(self) -> bool:
        return self._listener_installed

    # ------------------------------------------------------------------
    # Chain enforcement
    # ------------------------------------------------------------------
    async def ensure_required_chain(self) -> NetworkState:
        """Make sure the wallet is on the required chain.

        Returns the resulting state: ``OK`` when already on (or successfully
        switched to) the required chain, ``UNSUPPORTED`` when the switch was
        declined or failed. A declined switch is not retried.

        Raises:
            ProviderUnavailable: No wallet provider is present or it cannot
                report its chain.
        """
        provider = self._require_provider()
        self._install_listener(provider)

        try:
            current = parse_chain_id(await provider.request("eth_chainId"))
        except Exception as exc:
            self._set_state(None, NetworkStatus.UNAVAILABLE)
            raise ProviderUnavailable(
                "Wallet provider did not report a chain id", details={"error": str(exc)}
            ) from exc

        self._reload_required = False
        if current == self._required_chain_id:
            return self._set_state(current, NetworkStatus.OK)

        logger.info(
            "Wallet on %s (%s); requesting switch to %s",
            get_network_label(current),
            current,
            self._required_chain_id,
        )
        self._set_state(current, NetworkStatus.SWITCHING)

        try:
            await provider.request(
                "wallet_switchEthereumChain",
                [{"chainId": chain_id_to_hex(self._required_chain_id)}],
            )
        except Exception as exc:
            logger.warning(
                "Switch to chain %s failed: %s", self._required_chain_id, exc
            )
            return self._set_state(current, NetworkStatus.UNSUPPORTED)

        # A chainChanged notification raised by the switch itself is not a
        # change under an established connection.
        self._reload_required = False
        return self._set_state(self._required_chain_id, NetworkStatus.OK)

    # ------------------------------------------------------------------
    # Chain change notifications
    # ------------------------------------------------------------------
    def add_observer(self, observer: NetworkObserver) -> Callable[[], None]:
        """Register a callback run after every chain-change notification."""

        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def detach(self) -> None:
        """Remove the chain-change listener from the provider."""

        if self._provider is not None and self._listener_installed:
            self._provider.remove_listener(CHAIN_CHANGED, self._handle_chain_changed)
        self._listener_installed = False

    def _install_listener(self, provider: WalletProvider) -> None:
        if self._listener_installed:
            return
        provider.on(CHAIN_CHANGED, self._handle_chain_changed)
        self._listener_installed = True
        logger.debug("Installed chain change listener")

    def _handle_chain_changed(self, raw_chain_id: Any) -> None:
        try:
            chain_id = parse_chain_id(raw_chain_id)
        except AssetRegistryError:
            logger.warning("Ignoring malformed chain change notification: %r", raw_chain_id)
            return

        status = (
            NetworkStatus.OK if chain_id == self._required_chain_id else NetworkStatus.UNSUPPORTED
        )
        state = self._set_state(chain_id, status)
        self._reload_required = True
        logger.info(
            "Chain changed to %s (%s); connection must be re-established",
            state.label,
            chain_id,
        )

        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                logger.exception("Network observer failed")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_provider(self) -> WalletProvider:
        if self._provider is None:
            self._set_state(None, NetworkStatus.UNAVAILABLE)
            raise ProviderUnavailable("No wallet provider found")
        return self._provider

    def _set_state(self, chain_id: int | None, status: NetworkStatus) -> NetworkState:
        label = get_network_label(chain_id) if chain_id is not None else "Unavailable"
        self._state = NetworkState(chain_id=chain_id, label=label, status=status)
        return self._state
