"""Utility functions for the asset registry client."""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from eth_abi import decode as abi_decode
from eth_typing import ChecksumAddress, HexStr
from hexbytes import HexBytes
from web3 import Web3

from .constants import REVERT_ERROR_SELECTOR
from .exceptions import ValidationError

_REVERT_PREFIX = "execution reverted"


def normalise_id_hash(value: Any, field: str = "id_hash") -> str:
    """Return an asset identifier as a lowercase 0x-prefixed bytes32 hex string."""
    if isinstance(value, bytes | bytearray):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ValidationError("Asset id must be hex encoded", field=field, value=value)
    else:
        raise ValidationError("Asset id must be bytes or a hex string", field=field, value=value)

    if len(raw) != 32:
        raise ValidationError("Asset id must be 32 bytes", field=field, value=value)
    return "0x" + raw.hex()


def to_checksum(address: Any, field: str = "address") -> ChecksumAddress:
    """Validate an address and return its checksum form."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValidationError("Invalid address", field=field, value=address)
    return Web3.to_checksum_address(address)


def chain_id_to_hex(chain_id: int) -> str:
    """Encode a chain id the way wallets expect it (EIP-695)."""
    if chain_id <= 0:
        raise ValidationError("Chain id must be positive", field="chain_id", value=chain_id)
    return hex(chain_id)


def parse_chain_id(value: Any) -> int:
    """Decode a chain id reported as int, hex string, or decimal string."""
    if isinstance(value, bool):
        raise ValidationError("Invalid chain id", field="chain_id", value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            pass
    raise ValidationError("Invalid chain id", field="chain_id", value=value)


def timestamp_to_datetime(seconds: int | float) -> datetime:
    """Convert seconds since the epoch into an aware UTC datetime."""
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def tx_hash_to_hex(tx_hash: Any) -> str:
    if isinstance(tx_hash, bytes | bytearray | HexBytes):
        return HexBytes(tx_hash).to_0x_hex()
    return str(tx_hash)


def extract_error_code(exc: BaseException) -> int | None:
    """Return the numeric provider/RPC error code carried by an exception, if any."""
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code

    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, Mapping):
        error = rpc_response.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("code"), int):
            return error["code"]

    for arg in exc.args:
        if isinstance(arg, Mapping) and isinstance(arg.get("code"), int):
            return arg["code"]
    return None


def decode_revert_data(data: Any) -> str | None:
    """Decode an ``Error(string)`` revert payload."""
    if data is None:
        return None
    if isinstance(data, str):
        try:
            raw = HexBytes(HexStr(data))
        except ValueError:
            return None
    elif isinstance(data, bytes | bytearray):
        raw = bytes(data)
    else:
        return None

    if not raw.startswith(REVERT_ERROR_SELECTOR):
        return None
    try:
        (reason,) = abi_decode(["string"], raw[len(REVERT_ERROR_SELECTOR) :])
    except Exception:
        return None
    return reason or None


def extract_revert_reason(exc: BaseException) -> str | None:
    """Return the human readable revert reason carried by an exception, if any."""
    reason = getattr(exc, "reason", None)
    if isinstance(reason, str) and reason:
        return reason

    message = getattr(exc, "message", None)
    if not isinstance(message, str) and exc.args and isinstance(exc.args[0], str):
        message = exc.args[0]
    if isinstance(message, str) and message.startswith(_REVERT_PREFIX):
        remainder = message[len(_REVERT_PREFIX) :].lstrip(":").strip()
        if remainder:
            return remainder

    return decode_revert_data(getattr(exc, "data", None))
