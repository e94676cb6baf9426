"""Shared fakes for wallet, web3 and contract collaborators."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from asset_registry.constants import SEPOLIA_CHAIN_ID
from asset_registry.exceptions import WalletRequestError
from asset_registry.types import ContractSession

SIGNER = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x3333333333333333333333333333333333333333"
ID_HASH = "0x" + "ab" * 32
TX_HASH = "0x" + "cd" * 32


async def _resolved(value: Any) -> Any:
    return value


class DummyFunctionCall:
    def __init__(self, contract: DummyContract, name: str, args: tuple[Any, ...]) -> None:
        self._contract = contract
        self.name = name
        self.args = args

    async def call(self) -> Any:
        self._contract.calls.append((self.name, self.args))
        result = self._contract.call_results[self.name]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(*self.args)
        return result

    async def build_transaction(self, params: dict[str, Any]) -> dict[str, Any]:
        if self._contract.build_error is not None:
            raise self._contract.build_error
        tx = {"to": self._contract.address, "from": params["from"], "data": self.name}
        self._contract.built.append((self.name, self.args))
        return tx


class DummyFunctions:
    def __init__(self, contract: DummyContract) -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., DummyFunctionCall]:
        if name.startswith("_"):
            raise AttributeError(name)
        return lambda *args: DummyFunctionCall(self._contract, name, args)


class DummyEvent:
    def __init__(self, contract: DummyContract, name: str) -> None:
        self._contract = contract
        self.name = name

    async def get_logs(self, from_block: int, to_block: int) -> list[dict[str, Any]]:
        self._contract.log_queries.append((self.name, from_block, to_block))
        return [
            log
            for log in self._contract.logs[self.name]
            if from_block <= log["blockNumber"] <= to_block
        ]


class DummyEvents:
    def __init__(self, contract: DummyContract) -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> DummyEvent:
        if name.startswith("_") or name not in self._contract.logs:
            raise AttributeError(name)
        return DummyEvent(self._contract, name)


class DummyContract:
    def __init__(self) -> None:
        self.address: str | None = None
        self.call_results: dict[str, Any] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.built: list[tuple[str, tuple[Any, ...]]] = []
        self.build_error: Exception | None = None
        self.logs: dict[str, list[dict[str, Any]]] = {
            "AssetRegistered": [],
            "AssetTransferred": [],
        }
        self.log_queries: list[tuple[str, int, int]] = []
        self.functions = DummyFunctions(self)
        self.events = DummyEvents(self)


class DummyEth:
    def __init__(self, contract: DummyContract) -> None:
        self.block = 100
        self.block_error: Exception | None = None
        self.receipts: dict[str, Any] = {}
        self.transactions: dict[str, Any] = {}
        self.call_error: Exception | None = None
        self.call_blocks: list[Any] = []
        self._contract = contract

    @property
    def block_number(self) -> Any:
        if self.block_error is not None:
            raise self.block_error
        return _resolved(self.block)

    def contract(self, address: str, abi: Any) -> DummyContract:
        self._contract.address = address
        return self._contract

    async def wait_for_transaction_receipt(self, tx_hash: str, timeout: float) -> Any:
        receipt = self.receipts[tx_hash]
        if isinstance(receipt, Exception):
            raise receipt
        return receipt

    async def get_transaction(self, tx_hash: str) -> Any:
        return self.transactions[tx_hash]

    async def call(self, params: dict[str, Any], block_identifier: Any = None) -> bytes:
        self.call_blocks.append(block_identifier)
        if self.call_error is not None:
            raise self.call_error
        return b""


class DummyWeb3:
    def __init__(self) -> None:
        self.contract = DummyContract()
        self.eth = DummyEth(self.contract)


class FakeWalletProvider:
    """Scriptable EIP-1193 wallet."""

    def __init__(self) -> None:
        self.chain_id = SEPOLIA_CHAIN_ID
        self.accounts: list[str] = [SIGNER]
        self.accounts_error: Exception | None = None
        self.chain_error: Exception | None = None
        self.switch_error: Exception | None = None
        self.send_error: Exception | None = None
        self.tx_hash = TX_HASH
        self.sent: list[dict[str, Any]] = []
        self.requests: list[tuple[str, list[Any]]] = []
        self.listeners: dict[str, list[Callable[..., Any]]] = {}
        self.web3 = DummyWeb3()
        self.closes = 0

    async def request(self, method: str, params: Any = None) -> Any:
        params = list(params or [])
        self.requests.append((method, params))

        if method == "eth_chainId":
            if self.chain_error is not None:
                raise self.chain_error
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_error is not None:
                raise self.switch_error
            self.chain_id = int(params[0]["chainId"], 16)
            self.emit("chainChanged", hex(self.chain_id))
            return None
        if method == "eth_requestAccounts":
            if self.accounts_error is not None:
                raise self.accounts_error
            return list(self.accounts)
        if method == "eth_sendTransaction":
            if self.send_error is not None:
                raise self.send_error
            self.sent.append(params[0])
            return self.tx_hash
        raise WalletRequestError(f"Unsupported wallet method: {method}", code=4200)

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> None:
        if listener in self.listeners.get(event, []):
            self.listeners[event].remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self.listeners.get(event, []))

    def emit(self, event: str, payload: Any) -> None:
        for listener in list(self.listeners.get(event, [])):
            listener(payload)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.requests if name == method)

    async def close(self) -> None:
        self.closes += 1


class FakeHandle:
    """In-memory contract handle with push-style event delivery."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Callable[[Any], None]]] = {}
        self.on_calls = 0
        self.on_delay = 0
        self.call_results: dict[str, Any] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.transacted: list[tuple[str, tuple[Any, ...]]] = []
        self.transact_error: Exception | None = None
        self.receipt: Any = {"status": 1, "blockNumber": 7}
        self.reason: str | None = None
        self.closed = False

    async def on(self, event_name: str, handler: Callable[[Any], None]) -> None:
        self.on_calls += 1
        for _ in range(self.on_delay):
            await asyncio.sleep(0)
        self.handlers.setdefault(event_name, []).append(handler)

    def off(self, event_name: str, handler: Callable[[Any], None]) -> None:
        if handler in self.handlers.get(event_name, []):
            self.handlers[event_name].remove(handler)

    def listener_count(self, event_name: str) -> int:
        return len(self.handlers.get(event_name, []))

    def emit(self, event_name: str, raw: Any) -> None:
        for handler in list(self.handlers.get(event_name, [])):
            handler(raw)

    def close(self) -> None:
        self.handlers.clear()
        self.closed = True

    async def call(self, function_name: str, *args: Any) -> Any:
        self.calls.append((function_name, args))
        result = self.call_results[function_name]
        if isinstance(result, Exception):
            raise result
        return result

    async def transact(self, function_name: str, *args: Any) -> str:
        self.transacted.append((function_name, args))
        if self.transact_error is not None:
            raise self.transact_error
        return TX_HASH

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Any:
        if isinstance(self.receipt, Exception):
            raise self.receipt
        return self.receipt

    async def revert_reason(self, tx_hash: str, receipt: Any) -> str | None:
        return self.reason


def _session_for(handle: Any, signer: str = SIGNER) -> ContractSession:
    return ContractSession(
        address=CONTRACT, signer_identity=signer, handle=handle, chain_id=SEPOLIA_CHAIN_ID
    )


def _registered_log(
    id_hash: str = ID_HASH,
    owner: str = SIGNER,
    name: str = "Widget",
    cost: int = 500,
    block: int = 101,
) -> dict[str, Any]:
    return {
        "event": "AssetRegistered",
        "args": {"idHash": bytes.fromhex(id_hash[2:]), "owner": owner, "name": name, "cost": cost},
        "blockNumber": block,
        "transactionHash": bytes.fromhex(TX_HASH[2:]),
    }


def _transferred_log(
    id_hash: str = ID_HASH,
    previous_owner: str = SIGNER,
    new_owner: str = OTHER,
    block: int = 102,
) -> dict[str, Any]:
    return {
        "event": "AssetTransferred",
        "args": {
            "idHash": bytes.fromhex(id_hash[2:]),
            "previousOwner": previous_owner,
            "newOwner": new_owner,
        },
        "blockNumber": block,
        "transactionHash": bytes.fromhex(TX_HASH[2:]),
    }


@pytest.fixture
def provider() -> FakeWalletProvider:
    return FakeWalletProvider()


@pytest.fixture
def dummy_web3(provider: FakeWalletProvider) -> DummyWeb3:
    return provider.web3


@pytest.fixture
def fake_handle() -> FakeHandle:
    return FakeHandle()


@pytest.fixture
def make_session() -> Callable[..., ContractSession]:
    return _session_for


@pytest.fixture
def registered_log() -> Callable[..., dict[str, Any]]:
    return _registered_log


@pytest.fixture
def transferred_log() -> Callable[..., dict[str, Any]]:
    return _transferred_log


@pytest.fixture
def make_handle() -> type[FakeHandle]:
    return FakeHandle
