"""Wallet provider capability and a local key-backed implementation."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .config import RegistryClientConfig
from .constants import ProviderErrorCode
from .exceptions import ValidationError, WalletRequestError
from .utils import chain_id_to_hex, parse_chain_id, tx_hash_to_hex

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
Approver = Callable[[Mapping[str, Any]], bool | Awaitable[bool]]


class WalletProvider(Protocol):
    """EIP-1193 shaped wallet the session layer talks to."""

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any: ...

    def on(self, event: str, listener: Listener) -> None: ...

    def remove_listener(self, event: str, listener: Listener) -> None: ...

    @property
    def web3(self) -> AsyncWeb3: ...


class LocalWalletProvider:
    """Wallet backed by a local private key and per-chain JSON-RPC endpoints.

    ``approver`` stands in for the wallet's confirmation dialog: it receives
    each transaction before signing and rejects it (EIP-1193 code 4001) by
    returning ``False``.
    """

    def __init__(
        self,
        config: RegistryClientConfig,
        *,
        approver: Approver | None = None,
    ) -> None:
        self._config = config.with_defaulted_urls()
        self._approver = approver
        self._account: LocalAccount | None = None
        if self._config.private_key:
            try:
                self._account = cast(LocalAccount, Account.from_key(self._config.private_key))
            except Exception as exc:
                raise ValidationError(
                    "Failed to derive signer account from provided private key",
                    field="private_key",
                    details={"error": str(exc)},
                ) from exc

        self._listeners: dict[str, list[Listener]] = {}
        self._active_url = self._config.rpc_url
        self._active_chain_id: int | None = None
        self._web3: AsyncWeb3 | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = self._build_web3(self._active_url)
        return self._web3

    @property
    def account(self) -> LocalAccount | None:
        return self._account

    @property
    def rpc_url(self) -> str:
        return self._active_url

    # ------------------------------------------------------------------
    # EIP-1193 surface
    # ------------------------------------------------------------------
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        params = list(params or [])
        logger.debug("Wallet request %s", method)

        if method == "eth_chainId":
            return await self._chain_id()
        if method == "eth_accounts":
            return [self._account.address] if self._account else []
        if method == "eth_requestAccounts":
            if self._account is None:
                raise WalletRequestError(
                    "No signing key configured", code=ProviderErrorCode.UNAUTHORIZED
                )
            return [self._account.address]
        if method == "wallet_switchEthereumChain":
            return await self._switch_chain(params)
        if method == "eth_sendTransaction":
            return await self._send_transaction(params)

        raise WalletRequestError(
            f"Unsupported wallet method: {method}", code=ProviderErrorCode.UNSUPPORTED_METHOD
        )

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def close(self) -> None:
        """Close the HTTP session of the active endpoint."""
        if self._web3 is None:
            return
        web3, self._web3 = self._web3, None
        await web3.provider.disconnect()
        logger.debug("Closed RPC session for %s", self._active_url)

    # ------------------------------------------------------------------
    # Request handlers
    # ------------------------------------------------------------------
    async def _chain_id(self) -> str:
        try:
            chain_id = await self.web3.eth.chain_id
        except Exception as exc:
            raise WalletRequestError(
                "Unable to read chain id from RPC",
                code=ProviderErrorCode.DISCONNECTED,
                details={"endpoint": self._active_url, "error": str(exc)},
            ) from exc
        self._active_chain_id = chain_id
        return chain_id_to_hex(chain_id)

    async def _switch_chain(self, params: list[Any]) -> None:
        if not params or not isinstance(params[0], Mapping) or "chainId" not in params[0]:
            raise ValidationError("Switch request requires a chainId", field="params", value=params)

        target = parse_chain_id(params[0]["chainId"])
        url = self._config.chain_rpc_urls.get(target)
        if url is None:
            raise WalletRequestError(
                f"Unrecognized chain ID {chain_id_to_hex(target)}",
                code=ProviderErrorCode.UNRECOGNIZED_CHAIN,
            )

        previous = self._active_chain_id
        if url != self._active_url or self._web3 is None:
            await self.close()
            self._active_url = url
            self._web3 = self._build_web3(url)
        self._active_chain_id = target
        logger.info("Wallet switched to chain %s via %s", target, url)

        if previous != target:
            self._emit("chainChanged", chain_id_to_hex(target))
        return None

    async def _send_transaction(self, params: list[Any]) -> str:
        if self._account is None:
            raise WalletRequestError(
                "No signing key configured", code=ProviderErrorCode.UNAUTHORIZED
            )
        if not params or not isinstance(params[0], Mapping):
            raise ValidationError(
                "Transaction request requires a transaction object", field="params", value=params
            )

        tx = dict(params[0])
        tx.setdefault("from", self._account.address)

        if self._approver is not None:
            approved = self._approver(tx)
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                raise WalletRequestError(
                    "User rejected the request.", code=ProviderErrorCode.USER_REJECTED
                )

        tx_hash = await self.web3.eth.send_transaction(tx)  # type: ignore[arg-type]
        return tx_hash_to_hex(tx_hash)

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _build_web3(self, rpc_url: str) -> AsyncWeb3:
        web3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url, request_kwargs={"timeout": self._config.request_timeout}
            )
        )
        if self._account is not None:
            web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
            web3.eth.default_account = self._account.address
        return web3

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception("Wallet %s listener failed", event)
