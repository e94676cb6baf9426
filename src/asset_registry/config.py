"""Configuration container for the asset registry client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from web3 import Web3
from web3.types import ChecksumAddress

from .constants import DEFAULT_REGISTRY_ADDRESS, DEFAULT_RPC_URL, SEPOLIA_CHAIN_ID
from .exceptions import ValidationError

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_EVENT_POLL_INTERVAL = 2.0


@dataclass(frozen=True)
class RegistryClientConfig:
    """Aggregated configuration used to construct the registry client."""

    rpc_url: str = DEFAULT_RPC_URL
    contract_address: ChecksumAddress = Web3.to_checksum_address(DEFAULT_REGISTRY_ADDRESS)
    required_chain_id: int = SEPOLIA_CHAIN_ID
    private_key: str | None = None
    chain_rpc_urls: Mapping[int, str] = field(default_factory=dict)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    event_poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL
    max_event_log: int | None = None

    def with_defaulted_urls(self) -> RegistryClientConfig:
        """Return a copy whose chain map always serves the required chain."""

        chain_rpc_urls = {int(k): v.rstrip("/") for k, v in self.chain_rpc_urls.items()}
        chain_rpc_urls.setdefault(self.required_chain_id, self.rpc_url.rstrip("/"))
        return replace(self, chain_rpc_urls=chain_rpc_urls)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RegistryClientConfig:
        """Build a configuration from ``ASSET_REGISTRY_*`` environment variables."""

        env = os.environ if environ is None else environ

        raw_chain_id = env.get("ASSET_REGISTRY_CHAIN_ID")
        try:
            chain_id = int(raw_chain_id, 0) if raw_chain_id else SEPOLIA_CHAIN_ID
        except ValueError as exc:
            raise ValidationError(
                "ASSET_REGISTRY_CHAIN_ID must be an integer",
                field="ASSET_REGISTRY_CHAIN_ID",
                value=raw_chain_id,
            ) from exc

        address = env.get("ASSET_REGISTRY_ADDRESS") or DEFAULT_REGISTRY_ADDRESS
        if not Web3.is_address(address):
            raise ValidationError(
                "ASSET_REGISTRY_ADDRESS is not a valid address",
                field="ASSET_REGISTRY_ADDRESS",
                value=address,
            )

        config = cls(
            rpc_url=env.get("ASSET_REGISTRY_RPC_URL") or DEFAULT_RPC_URL,
            contract_address=Web3.to_checksum_address(address),
            required_chain_id=chain_id,
            private_key=env.get("PRIVATE_KEY") or None,
            chain_rpc_urls=_parse_chain_rpc_urls(env.get("ASSET_REGISTRY_CHAIN_RPC_URLS", "")),
        )
        return config.with_defaulted_urls()


def _parse_chain_rpc_urls(raw: str) -> dict[int, str]:
    """Parse ``1=https://a,11155111=https://b`` into a chain id map."""

    urls: dict[int, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        chain, sep, url = entry.partition("=")
        try:
            chain_id = int(chain.strip(), 0)
        except ValueError:
            chain_id = None
        if not sep or chain_id is None or not url.strip():
            raise ValidationError(
                "Chain RPC entries must look like <chain id>=<url>",
                field="ASSET_REGISTRY_CHAIN_RPC_URLS",
                value=entry,
            )
        urls[chain_id] = url.strip()
    return urls
