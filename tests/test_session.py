"""Tests for the contract session factory and contract handle."""

from __future__ import annotations

import asyncio

import pytest
from eth_abi import encode as abi_encode
from web3 import Web3

from asset_registry.constants import REVERT_ERROR_SELECTOR, SEPOLIA_CHAIN_ID
from asset_registry.exceptions import (
    ChainMismatch,
    ProviderUnavailable,
    RemoteCallFailed,
    SessionInvalidated,
    SignerUnavailable,
    ValidationError,
    WalletRequestError,
)
from asset_registry.handle import ContractHandle
from asset_registry.network import NetworkGuard
from asset_registry.session import ContractSessionFactory

SIGNER = "0x1111111111111111111111111111111111111111"
CONTRACT = "0x3333333333333333333333333333333333333333"
TX_HASH = "0x" + "cd" * 32


async def _factory(provider, *, ensure: bool = True) -> ContractSessionFactory:
    guard = NetworkGuard(provider, SEPOLIA_CHAIN_ID)
    if ensure:
        await guard.ensure_required_chain()
    return ContractSessionFactory(provider, guard, CONTRACT, event_poll_interval=0.01)


def _handle(provider) -> ContractHandle:
    web3 = provider.web3
    contract = web3.eth.contract(address=CONTRACT, abi=[])
    return ContractHandle(provider, web3, contract, SIGNER, poll_interval=60)


class RevertError(Exception):
    def __init__(self, message: str, data: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


@pytest.mark.asyncio
async def test_create_session_binds_signer_and_contract(provider) -> None:
    factory = await _factory(provider)

    session = await factory.create_session()

    assert session.address == Web3.to_checksum_address(CONTRACT)
    assert session.signer_identity == Web3.to_checksum_address(SIGNER)
    assert session.chain_id == SEPOLIA_CHAIN_ID
    assert session.handle.signer == session.signer_identity
    assert factory.current is session
    assert provider.web3.contract.address == session.address


@pytest.mark.asyncio
async def test_create_session_requires_ok_network(provider) -> None:
    factory = await _factory(provider, ensure=False)

    with pytest.raises(ChainMismatch):
        await factory.create_session()


@pytest.mark.asyncio
async def test_create_session_after_declined_switch(provider) -> None:
    provider.chain_id = 1
    provider.switch_error = WalletRequestError("User rejected the request.", code=4001)
    factory = await _factory(provider)

    with pytest.raises(ChainMismatch) as excinfo:
        await factory.create_session()

    assert excinfo.value.current_chain_id == 1
    assert excinfo.value.required_chain_id == SEPOLIA_CHAIN_ID


@pytest.mark.asyncio
async def test_create_session_without_provider() -> None:
    guard = NetworkGuard(None, SEPOLIA_CHAIN_ID)
    factory = ContractSessionFactory(None, guard, CONTRACT)

    with pytest.raises(ProviderUnavailable):
        await factory.create_session()


@pytest.mark.asyncio
async def test_create_session_when_account_access_denied(provider) -> None:
    factory = await _factory(provider)
    provider.accounts_error = WalletRequestError("Unauthorized", code=4100)

    with pytest.raises(SignerUnavailable):
        await factory.create_session()


@pytest.mark.asyncio
async def test_create_session_with_no_accounts(provider) -> None:
    factory = await _factory(provider)
    provider.accounts = []

    with pytest.raises(SignerUnavailable):
        await factory.create_session()


@pytest.mark.asyncio
async def test_new_session_supersedes_previous(provider) -> None:
    factory = await _factory(provider)
    first = await factory.create_session()
    await first.handle.on("AssetRegistered", lambda raw: None)

    second = await factory.create_session()

    assert first.closed
    assert first.handle.listener_count("AssetRegistered") == 0
    assert not second.closed
    assert factory.is_current(second)
    assert not factory.is_current(first)
    with pytest.raises(SessionInvalidated):
        await first.handle.call("getAssetsOf", SIGNER)

    factory.invalidate()
    assert factory.current is None
    assert second.closed


@pytest.mark.asyncio
async def test_handle_call_wraps_errors(provider) -> None:
    handle = _handle(provider)
    provider.web3.contract.call_results["getAssetsOf"] = ConnectionError("rpc down")

    with pytest.raises(RemoteCallFailed) as excinfo:
        await handle.call("getAssetsOf", SIGNER)

    assert excinfo.value.function == "getAssetsOf"


@pytest.mark.asyncio
async def test_handle_transact_goes_through_wallet(provider) -> None:
    handle = _handle(provider)

    tx_hash = await handle.transact("registerAsset", "Widget", 500)

    assert tx_hash == TX_HASH
    assert provider.web3.contract.built == [("registerAsset", ("Widget", 500))]
    assert provider.sent == [{"to": CONTRACT, "from": SIGNER, "data": "registerAsset"}]


@pytest.mark.asyncio
async def test_handle_revert_reason_replays_call(provider) -> None:
    handle = _handle(provider)
    eth = provider.web3.eth
    eth.transactions[TX_HASH] = {"from": SIGNER, "to": CONTRACT, "input": "0x", "value": 0}
    data = "0x" + (REVERT_ERROR_SELECTOR + abi_encode(["string"], ["cost too low"])).hex()
    eth.call_error = RevertError("execution reverted", data=data)

    reason = await handle.revert_reason(TX_HASH, {"status": 0, "blockNumber": 12})

    assert reason == "cost too low"
    assert eth.call_blocks == [11]

    eth.call_error = None
    assert await handle.revert_reason(TX_HASH, {"status": 0, "blockNumber": 12}) is None


@pytest.mark.asyncio
async def test_handle_revert_replay_at_genesis_stays_at_zero(provider) -> None:
    handle = _handle(provider)
    eth = provider.web3.eth
    eth.transactions[TX_HASH] = {"from": SIGNER, "to": CONTRACT, "input": "0x", "value": 0}

    await handle.revert_reason(TX_HASH, {"status": 0, "blockNumber": 0})

    assert eth.call_blocks == [0]


@pytest.mark.asyncio
async def test_handle_single_poller_per_event(provider, registered_log) -> None:
    handle = _handle(provider)
    contract = provider.web3.contract
    received: list[dict] = []

    await handle.on("AssetRegistered", received.append)
    await handle.on("AssetRegistered", received.append)

    assert handle.listener_count("AssetRegistered") == 2
    assert len(handle._pollers) == 1

    contract.logs["AssetRegistered"].append(registered_log(block=100))
    contract.logs["AssetRegistered"].append(registered_log(block=101))
    provider.web3.eth.block = 101
    await handle._poll_once("AssetRegistered", contract.events.AssetRegistered)

    # Only logs after the head at registration time are delivered
    assert [log["blockNumber"] for log in received] == [101, 101]
    assert contract.log_queries == [("AssetRegistered", 101, 101)]

    await handle._poll_once("AssetRegistered", contract.events.AssetRegistered)
    assert len(received) == 2

    handle.close()
    assert handle.listener_count("AssetRegistered") == 0
    assert handle._pollers == {}


@pytest.mark.asyncio
async def test_handle_off_stops_poller(provider) -> None:
    handle = _handle(provider)

    def handler(raw: dict) -> None:
        pass

    await handle.on("AssetTransferred", handler)
    task = handle._pollers["AssetTransferred"]

    handle.off("AssetTransferred", handler)

    assert handle.listener_count("AssetTransferred") == 0
    assert "AssetTransferred" not in handle._pollers
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_handle_rejects_unknown_event(provider) -> None:
    handle = _handle(provider)

    with pytest.raises(ValidationError):
        await handle.on("AssetBurned", lambda raw: None)


@pytest.mark.asyncio
async def test_handle_on_fails_when_block_height_unavailable(provider) -> None:
    handle = _handle(provider)
    provider.web3.eth.block_error = ConnectionError("rpc down")

    with pytest.raises(RemoteCallFailed):
        await handle.on("AssetRegistered", lambda raw: None)

    assert handle.listener_count("AssetRegistered") == 0
