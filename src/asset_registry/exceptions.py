"""Exception hierarchy for the asset registry session layer."""

from typing import Any


class AssetRegistryError(Exception):
    """Base exception for all asset registry errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProviderUnavailable(AssetRegistryError):
    """Raised when no wallet provider is present or it cannot be reached."""

    pass


class SignerUnavailable(AssetRegistryError):
    """Raised when the wallet has not authorised account access."""

    pass


class ChainMismatch(AssetRegistryError):
    """Raised when the wallet is not on the required chain."""

    def __init__(
        self,
        message: str,
        required_chain_id: int | None = None,
        current_chain_id: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.required_chain_id = required_chain_id
        self.current_chain_id = current_chain_id


class RemoteCallFailed(AssetRegistryError):
    """Raised when a read-only contract call fails."""

    def __init__(
        self,
        message: str,
        function: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.function = function


class NotFound(AssetRegistryError):
    """Raised when the queried asset does not exist on the ledger."""

    def __init__(self, message: str, id_hash: str | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.id_hash = id_hash


class ValidationError(AssetRegistryError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class SessionInvalidated(AssetRegistryError):
    """Raised when a discarded contract session is used."""

    pass


class WalletRequestError(AssetRegistryError):
    """Raised by wallet providers for EIP-1193 request failures."""

    def __init__(self, message: str, code: int, details: dict | None = None):
        super().__init__(message, details)
        self.code = code
