from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from eth_utils import is_address, to_checksum_address

from ..errors import PipelineCancelled, SubmissionError
from .cancel import CancelToken
from .ports import PersistenceGateway, Signer
from .types import (
    SelectedItem,
    SubmissionReceipt,
    SubmissionState,
    TransactionRecord,
    TransactionRequest,
)

log = logging.getLogger(__name__)


def build_transaction(item: SelectedItem, gas_price: int, gas_limit: int) -> TransactionRequest:
    """Construct the zero-value mint call for ``item``."""

    if not is_address(item.destination_address):
        raise ValueError(f"invalid destination address {item.destination_address!r}")
    if gas_limit <= 0:
        raise ValueError(f"gas limit must be positive, got {gas_limit}")
    if gas_price < 0:
        raise ValueError(f"gas price must not be negative, got {gas_price}")
    return TransactionRequest(
        to=to_checksum_address(item.destination_address),
        value=0,
        gas_price=int(gas_price),
        gas_limit=int(gas_limit),
        data=bytes(item.payload),
    )


class SubmissionService:
    """Submit selected items on-chain at most once per contract address.

    Items are handled strictly one at a time so the signer's pending nonce is
    never shared between two in-flight transactions.
    """

    def __init__(
        self,
        input_queue: "asyncio.Queue[SelectedItem]",
        gateway: PersistenceGateway,
        signer: Signer,
        cancel: CancelToken,
        *,
        gas_limit: int,
        on_receipt: Optional[Callable[[SubmissionReceipt], Awaitable[None] | None]] = None,
    ) -> None:
        self.input_queue = input_queue
        self.gateway = gateway
        self.signer = signer
        self.cancel = cancel
        self.gas_limit = int(gas_limit)
        self._on_receipt = on_receipt
        self.stats: Dict[str, int] = {
            "received": 0,
            "submitted": 0,
            "duplicates": 0,
            "failed": 0,
        }
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run(), name="submission_service")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def run(self) -> None:
        log.info("Starting submission worker (gas_limit=%d)", self.gas_limit)
        try:
            while True:
                item = await self.cancel.run(self.input_queue.get())
                try:
                    receipt = await self.submit(item)
                finally:
                    self.input_queue.task_done()
                await self._notify(receipt)
        except PipelineCancelled:
            pass
        log.info("Submission worker stopped")

    async def submit(self, item: SelectedItem) -> SubmissionReceipt:
        """Drive ``item`` through the submission state machine."""

        self.stats["received"] += 1
        receipt = SubmissionReceipt(
            contract_address=item.contract_address,
            state=SubmissionState.RECEIVED,
            started_at=time.time(),
        )
        try:
            await self._advance(item, receipt)
        except SubmissionError as exc:
            self.stats["failed"] += 1
            receipt.state = SubmissionState.FAILED
            receipt.error_kind = exc.kind
            receipt.error = str(exc)
            log.warning(
                "Submission for %s failed at %s: %s",
                item.collection_name,
                exc.kind,
                exc,
            )
            await self.cancel.run(
                self.gateway.record_error(exc.kind, str(exc), item.contract_address)
            )
        receipt.finished_at = time.time()
        return receipt

    async def _advance(self, item: SelectedItem, receipt: SubmissionReceipt) -> None:
        minted = await self._step("dedup_check", self.gateway.has_existing_transaction(item.contract_address))
        receipt.state = SubmissionState.DEDUP_CHECKED
        if minted:
            self.stats["duplicates"] += 1
            receipt.state = SubmissionState.SKIPPED
            log.info("Collection %s already processed; skipping", item.collection_name)
            return

        receipt.state = SubmissionState.ESTIMATING
        gas_price = await self._step("estimate_gas", self.signer.estimate_gas_price())

        receipt.state = SubmissionState.BUILDING
        try:
            request = build_transaction(item, int(gas_price), self.gas_limit)
        except (TypeError, ValueError) as exc:
            raise SubmissionError("build_transaction", str(exc)) from exc

        receipt.state = SubmissionState.SIGNING
        signed = await self._step("sign_transaction", self.signer.build_and_sign(request))

        receipt.state = SubmissionState.BROADCASTING
        tx_hash = await self._step("broadcast_transaction", self.signer.broadcast(signed))
        receipt.transaction_hash = tx_hash

        receipt.state = SubmissionState.PERSISTING
        record = TransactionRecord(
            name=item.collection_name,
            contract_address=item.contract_address,
            unit_count=item.unit_count,
            transaction_hash=tx_hash,
        )
        await self._persist(record)

        receipt.state = SubmissionState.DONE
        self.stats["submitted"] += 1
        log.info(
            "Initiated mint transaction %s for collection %s",
            tx_hash,
            item.collection_name,
        )

    async def _persist(self, record: TransactionRecord) -> None:
        """Write the idempotency marker for a broadcast transaction.

        The transaction is already on-chain at this point, so the write is not
        raced against the cancellation signal and is shielded from task
        cancellation.
        """

        try:
            await asyncio.shield(self.gateway.record_transaction(record))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise SubmissionError("persist_transaction", str(exc) or type(exc).__name__) from exc

    async def _step(self, kind: str, aw: Awaitable[Any]) -> Any:
        try:
            return await self.cancel.run(aw)
        except PipelineCancelled:
            raise
        except Exception as exc:
            raise SubmissionError(kind, str(exc) or type(exc).__name__) from exc

    async def _notify(self, receipt: SubmissionReceipt) -> None:
        if not self._on_receipt:
            return
        try:
            maybe = self._on_receipt(receipt)
            if inspect.isawaitable(maybe):
                await maybe
        except Exception:
            log.exception("Receipt callback failed")
