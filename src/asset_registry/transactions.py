"""Transaction orchestration: submit, await finality and classify."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .config import DEFAULT_RECEIPT_TIMEOUT
from .constants import ProviderErrorCode
from .exceptions import ValidationError
from .types import (
    ContractSession,
    Operation,
    RegisterAsset,
    TransferAsset,
    TxOutcome,
    TxOutcomeKind,
)
from .utils import extract_error_code, extract_revert_reason

logger = logging.getLogger(__name__)


def classify_error(exc: BaseException, tx_hash: str | None = None) -> TxOutcome:
    """Map a submission or confirmation error onto a transaction outcome."""

    if extract_error_code(exc) == ProviderErrorCode.USER_REJECTED:
        return TxOutcome(TxOutcomeKind.REJECTED_BY_USER, detail=str(exc) or None, tx_hash=tx_hash)

    reason = extract_revert_reason(exc)
    if reason is not None:
        return TxOutcome(TxOutcomeKind.REVERTED, detail=reason, tx_hash=tx_hash)

    return TxOutcome(
        TxOutcomeKind.FAILED_UNKNOWN,
        detail=str(exc) or type(exc).__name__,
        tx_hash=tx_hash,
    )


class TransactionOrchestrator:
    """Submit state-changing calls and report a single outcome for each.

    Failures are returned as outcomes, never raised, and nothing is retried.
    """

    def __init__(self, *, receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT) -> None:
        self._receipt_timeout = receipt_timeout

    async def submit(self, session: ContractSession, operation: Operation) -> TxOutcome:
        action = operation.function_name
        try:
            args = operation.contract_args()
        except ValidationError as exc:
            logger.warning("Rejected %s before submission: %s", action, exc)
            return TxOutcome(TxOutcomeKind.FAILED_UNKNOWN, detail=f"{exc.field}: {exc.message}")

        handle = session.handle
        try:
            tx_hash = await handle.transact(action, *args)
        except Exception as exc:
            outcome = classify_error(exc)
            self._log_failure(action, outcome, exc)
            return outcome

        logger.info("Transaction sent for action=%s hash=%s", action, tx_hash)

        try:
            receipt = await handle.wait_for_receipt(tx_hash, self._receipt_timeout)
        except Exception as exc:
            outcome = classify_error(exc, tx_hash=tx_hash)
            self._log_failure(action, outcome, exc)
            return outcome

        return await self._classify_receipt(session, action, tx_hash, receipt)

    async def register_asset(self, session: ContractSession, name: str, cost: int) -> TxOutcome:
        return await self.submit(session, RegisterAsset(name=name, cost=cost))

    async def transfer_asset(
        self, session: ContractSession, id_hash: str, new_owner: str
    ) -> TxOutcome:
        return await self.submit(session, TransferAsset(id_hash=id_hash, new_owner=new_owner))

    async def _classify_receipt(
        self,
        session: ContractSession,
        action: str,
        tx_hash: str,
        receipt: Mapping[str, Any],
    ) -> TxOutcome:
        block_number = receipt.get("blockNumber")
        if receipt.get("status") == 1:
            logger.info(
                "Transaction confirmed for action=%s hash=%s block=%s",
                action,
                tx_hash,
                block_number,
            )
            return TxOutcome(TxOutcomeKind.CONFIRMED, tx_hash=tx_hash, block_number=block_number)

        reason = await session.handle.revert_reason(tx_hash, receipt)
        logger.warning(
            "Transaction reverted for action=%s hash=%s reason=%s", action, tx_hash, reason
        )
        return TxOutcome(
            TxOutcomeKind.REVERTED, detail=reason, tx_hash=tx_hash, block_number=block_number
        )

    def _log_failure(self, action: str, outcome: TxOutcome, exc: BaseException) -> None:
        if outcome.kind is TxOutcomeKind.FAILED_UNKNOWN:
            logger.error("Unexpected %s failure: %s", action, exc, exc_info=exc)
        else:
            logger.info("%s ended as %s: %s", action, outcome.kind.value, outcome.detail)
