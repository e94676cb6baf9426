"""Contract handle bound to a signer: reads, writes and event listeners."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from web3 import AsyncWeb3
from web3.contract import AsyncContract

from .config import DEFAULT_EVENT_POLL_INTERVAL
from .exceptions import RemoteCallFailed, SessionInvalidated, ValidationError
from .utils import extract_revert_reason, tx_hash_to_hex
from .wallet import WalletProvider

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class ContractHandle:
    """Registry contract as seen by one signer on one chain.

    Event listeners are served by one polling task per event kind which
    fetches logs from the block after the head at registration time onward.
    """

    def __init__(
        self,
        provider: WalletProvider,
        web3: AsyncWeb3,
        contract: AsyncContract,
        signer: str,
        *,
        poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL,
    ) -> None:
        self._provider = provider
        self._web3 = web3
        self._contract = contract
        self._signer = signer
        self._poll_interval = poll_interval
        self._handlers: dict[str, list[EventHandler]] = {}
        self._cursors: dict[str, int | None] = {}
        self._pollers: dict[str, asyncio.Task[None]] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def contract(self) -> AsyncContract:
        return self._contract

    @property
    def signer(self) -> str:
        return self._signer

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------
    async def call(self, function_name: str, *args: Any) -> Any:
        self._ensure_open()
        contract_function = self._resolve_function(function_name)(*args)
        try:
            return await contract_function.call()
        except Exception as exc:
            raise RemoteCallFailed(
                f"Read call {function_name} failed",
                function=function_name,
                details={"args": list(args), "error": str(exc)},
            ) from exc

    async def transact(self, function_name: str, *args: Any) -> str:
        """Build a transaction for the signer and hand it to the wallet.

        Errors from gas estimation and from the wallet propagate unchanged so
        callers can classify them.
        """
        self._ensure_open()
        contract_function = self._resolve_function(function_name)(*args)
        tx = await contract_function.build_transaction({"from": self._signer})
        logger.info("Dispatching %s from %s", function_name, self._signer)
        tx_hash = await self._provider.request("eth_sendTransaction", [dict(tx)])
        return tx_hash_to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Mapping[str, Any]:
        return await self._web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)  # type: ignore[arg-type]

    async def revert_reason(self, tx_hash: str, receipt: Mapping[str, Any]) -> str | None:
        """Replay a reverted transaction to recover its revert reason."""
        try:
            tx = await self._web3.eth.get_transaction(tx_hash)  # type: ignore[arg-type]
            block_number = int(receipt.get("blockNumber") or 0)
            await self._web3.eth.call(
                {
                    "from": tx["from"],
                    "to": tx["to"],
                    "data": tx["input"],
                    "value": tx.get("value", 0),
                },
                block_identifier=max(block_number - 1, 0),
            )
        except Exception as exc:
            reason = extract_revert_reason(exc)
            if reason is None:
                logger.debug("No revert reason recoverable for %s: %s", tx_hash, exc)
            return reason
        return None

    # ------------------------------------------------------------------
    # Event listeners
    # ------------------------------------------------------------------
    async def on(self, event_name: str, handler: EventHandler) -> None:
        self._ensure_open()
        event = self._resolve_event(event_name)
        self._handlers.setdefault(event_name, []).append(handler)
        if event_name in self._cursors:
            return

        self._cursors[event_name] = None
        try:
            head = await self._web3.eth.block_number
        except Exception as exc:
            self._cursors.pop(event_name, None)
            self._discard_handler(event_name, handler)
            raise RemoteCallFailed(
                "Unable to read block height for event subscription",
                function=event_name,
                details={"error": str(exc)},
            ) from exc

        # off() or close() may have run while the block height was read
        if event_name not in self._cursors or not self._handlers.get(event_name):
            return

        self._cursors[event_name] = head + 1
        self._pollers[event_name] = asyncio.create_task(
            self._poll(event_name, event), name=f"asset-registry-{event_name}"
        )
        logger.debug("Listening for %s from block %s", event_name, head + 1)

    def off(self, event_name: str, handler: EventHandler) -> None:
        self._discard_handler(event_name, handler)
        if not self._handlers.get(event_name):
            self._stop_poller(event_name)

    def listener_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))

    def remove_all_listeners(self) -> None:
        for event_name in list(self._cursors):
            self._stop_poller(event_name)
        self._handlers.clear()

    def close(self) -> None:
        """Remove every listener and refuse further use of this handle."""
        self.remove_all_listeners()
        self._closed = True

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    async def _poll(self, event_name: str, event: Any) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self._poll_once(event_name, event)
            except Exception:
                logger.warning("Polling %s logs failed", event_name, exc_info=True)

    async def _poll_once(self, event_name: str, event: Any) -> None:
        from_block = self._cursors.get(event_name)
        if from_block is None:
            return
        head = await self._web3.eth.block_number
        if head < from_block:
            return

        logs = await event.get_logs(from_block=from_block, to_block=head)
        if event_name in self._cursors:
            self._cursors[event_name] = head + 1
        for log in logs:
            self._dispatch(event_name, log)

    def _dispatch(self, event_name: str, log: Any) -> None:
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(log)
            except Exception:
                logger.exception("Handler for %s failed", event_name)

    def _stop_poller(self, event_name: str) -> None:
        self._cursors.pop(event_name, None)
        task = self._pollers.pop(event_name, None)
        if task is not None and not task.done():
            task.cancel()

    def _discard_handler(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(event_name, None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionInvalidated(
                "Contract session was replaced or invalidated; reconnect first",
                details={"signer": self._signer},
            )

    def _resolve_function(self, function_name: str) -> Any:
        try:
            return getattr(self._contract.functions, function_name)
        except AttributeError as exc:
            raise ValidationError(
                "Unknown contract function", field="function", value=function_name
            ) from exc

    def _resolve_event(self, event_name: str) -> Any:
        try:
            return getattr(self._contract.events, event_name)
        except AttributeError as exc:
            raise ValidationError(
                "Unknown contract event", field="event", value=event_name
            ) from exc
