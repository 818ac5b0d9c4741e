"""
Payout engine: move available creator balance to a bank account.

Flow: pre-flight checks (no gateway traffic) -> destination registration if
needed -> one transaction that debits the balance, bumps the payout sequence
and records a pending payout -> idempotent transfer. Rejected transfers and
refunding webhook statuses (failed, cancelled, reversed) return the reserved
balance exactly once.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from application.dtos.payments import (
    ContactRequest,
    FundAccountRequest,
    GatewayTransfer,
    SettlementOutcome,
    TransferRequest,
)
from application.ports.payment_gateway import PaymentGateway
from application.utils.retry import GatewayCallExecutor
from core.logging_config import get_logger
from core.settings import PayoutSettings
from domain.common.time import utcnow
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.creator.entity import CreatorAccount
from domain.payment.exceptions import (
    CreatorNotFoundException,
    DuplicatePayoutException,
    GatewayAuthFailureException,
    GatewayException,
    GatewayRejectedException,
    InsufficientBalanceException,
    InvalidPaymentInputException,
    PayoutDestinationMissingException,
)
from domain.payout.entity import (
    Payout,
    PayoutStatus,
    REFUNDING_PAYOUT_STATUSES,
    build_idempotency_key,
)
from shared.codes.payment_codes import GATEWAY_STATUS_TO_INTERNAL


logger = get_logger(__name__)

UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]


def map_payout_status(raw_status: Optional[str]) -> Optional[PayoutStatus]:
    internal = GATEWAY_STATUS_TO_INTERNAL["payout"].get((raw_status or "").lower())
    return PayoutStatus(internal) if internal else None


class PayoutService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateway: PaymentGateway,
        executor: GatewayCallExecutor,
        settings: Optional[PayoutSettings] = None,
        *,
        source_account_number: str,
    ) -> None:
        self._uow_factory = uow_factory
        self.gateway = gateway
        self.executor = executor
        self.settings = settings or PayoutSettings()
        self.source_account_number = source_account_number

    def validate_payout_request(self, amount) -> int:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidPaymentInputException("Payout amount must be a positive integer", field="amount")
        if amount < self.settings.min_amount:
            raise InvalidPaymentInputException(
                f"Payout amount must be at least {self.settings.min_amount}",
                field="amount",
                details={"min_amount": self.settings.min_amount},
            )
        return amount

    async def create_artist_payout(
        self,
        creator_id: int,
        amount: int,
        payout_type: str = "manual",
        *,
        idempotency_key: Optional[str] = None,
        narration: Optional[str] = None,
        notes: Optional[dict] = None,
    ) -> Payout:
        async with self._uow_factory() as uow:
            creator = await uow.creator_repository.get_by_id(creator_id)
        if creator is None:
            raise CreatorNotFoundException(creator_id)
        if not creator.has_payout_destination:
            raise PayoutDestinationMissingException(creator_id)

        self.validate_payout_request(amount)
        if amount > creator.available_balance:
            self._log_insufficient(creator_id, amount, creator.available_balance)
            raise InsufficientBalanceException(requested=amount, available=creator.available_balance)

        fund_account_id = await self._ensure_payout_destination(creator)
        payout = await self._reserve_payout(
            creator_id,
            amount,
            payout_type,
            idempotency_key=idempotency_key,
            narration=narration or self.settings.narration,
            notes=notes or {},
        )
        return await self._submit_transfer(payout, fund_account_id)

    @staticmethod
    def _log_insufficient(creator_id: int, requested: int, available: int) -> None:
        logger.info("payout_insufficient_balance", creator_id=creator_id, requested=requested, available=available)

    async def _reserve_payout(
        self,
        creator_id: int,
        amount: int,
        payout_type: str,
        *,
        idempotency_key: Optional[str],
        narration: str,
        notes: dict,
    ) -> Payout:
        """Debit the balance and persist a pending payout in one transaction.

        Runs before any transfer call, so two concurrent payouts can never
        both spend the same balance. The debit returns the new payout
        sequence, which names the derived idempotency key.
        """
        try:
            async with self._uow_factory() as uow:
                if idempotency_key:
                    await self._raise_if_duplicate(uow, idempotency_key)
                sequence = await uow.creator_repository.debit_for_payout(creator_id, amount)
                if sequence is None:
                    creator = await uow.creator_repository.get_by_id(creator_id)
                    available = creator.available_balance if creator else 0
                    self._log_insufficient(creator_id, amount, available)
                    raise InsufficientBalanceException(requested=amount, available=available)
                key = idempotency_key or build_idempotency_key(payout_type, creator_id, amount, sequence)
                if not idempotency_key:
                    await self._raise_if_duplicate(uow, key)
                payout = await uow.payout_repository.create(
                    Payout(
                        id=None,
                        creator_id=creator_id,
                        amount=amount,
                        idempotency_key=key,
                        currency=self.settings.currency,
                        status=PayoutStatus.PENDING,
                        payout_type=payout_type,
                        reference_id=f"payout_{creator_id}_{sequence}",
                        mode=self.settings.mode,
                        narration=narration,
                        notes=notes,
                    )
                )
        except DuplicatePayoutException as exc:
            if exc.existing:
                raise
            # lost the insert race on the unique key; report the winner
            async with self._uow_factory() as uow:
                existing = await uow.payout_repository.get_by_idempotency_key(exc.idempotency_key)
            raise DuplicatePayoutException(exc.idempotency_key, existing.summary() if existing else None) from exc

        logger.info(
            "payout_reserved",
            payout_id=payout.id,
            creator_id=creator_id,
            amount=amount,
            idempotency_key=payout.idempotency_key,
        )
        return payout

    @staticmethod
    async def _raise_if_duplicate(uow: AbstractUnitOfWork, key: str) -> None:
        existing = await uow.payout_repository.get_by_idempotency_key(key)
        if existing is not None:
            logger.info("payout_duplicate_request", creator_id=existing.creator_id, idempotency_key=key)
            raise DuplicatePayoutException(key, existing.summary())

    def _transfer_request(self, payout: Payout, fund_account_id: str) -> TransferRequest:
        return TransferRequest(
            account_number=self.source_account_number,
            fund_account_id=fund_account_id,
            amount=payout.amount,
            currency=payout.currency,
            mode=payout.mode or self.settings.mode,
            purpose=self.settings.purpose,
            reference_id=payout.reference_id,
            narration=payout.narration or self.settings.narration,
            notes={"creator_id": str(payout.creator_id), "payout_type": payout.payout_type, **payout.notes},
            idempotency_key=payout.idempotency_key,
        )

    async def _submit_transfer(self, payout: Payout, fund_account_id: str) -> Payout:
        """Send the transfer for a reserved payout.

        A definitive rejection releases the reservation. Timeouts and
        outages leave the payout pending with its balance held: the transfer
        may exist at the gateway, and resubmitting under the same key is
        safe.
        """
        request = self._transfer_request(payout, fund_account_id)
        logger.info(
            "payout_transfer_request",
            payout_id=payout.id,
            creator_id=payout.creator_id,
            amount=payout.amount,
            idempotency_key=payout.idempotency_key,
        )
        try:
            transfer = await self.executor.execute(lambda: self.gateway.create_transfer(request), "payout_creation")
        except GatewayRejectedException as exc:
            await self._release_reservation(payout, exc.gateway_description or exc.message)
            raise self._map_rejection(exc, payout.creator_id, payout.amount, payout.idempotency_key) from exc
        except GatewayAuthFailureException as exc:
            await self._release_reservation(payout, exc.message)
            raise
        except GatewayException as exc:
            logger.warning(
                "payout_submission_uncertain",
                payout_id=payout.id,
                idempotency_key=payout.idempotency_key,
                error=exc.message,
            )
            raise
        return await self._record_transfer(payout, transfer)

    async def _record_transfer(self, payout: Payout, transfer: GatewayTransfer) -> Payout:
        status = map_payout_status(transfer.status) or PayoutStatus.PROCESSING
        async with self._uow_factory() as uow:
            await uow.payout_repository.attach_gateway_payout(payout.id, transfer.id, at=utcnow())
            await self._move(uow, payout, status, transfer.failure_reason)
            stored = await uow.payout_repository.get_by_idempotency_key(payout.idempotency_key)

        logger.info(
            "payout_created",
            payout_id=stored.id,
            creator_id=stored.creator_id,
            amount=stored.amount,
            gateway_payout_id=transfer.id,
            status=stored.status.value,
        )
        return stored

    async def _release_reservation(self, payout: Payout, reason: str) -> None:
        async with self._uow_factory() as uow:
            _, refunded = await self._move(uow, payout, PayoutStatus.FAILED, reason)
        logger.info("payout_reservation_released", payout_id=payout.id, refunded=refunded, reason=reason)

    @staticmethod
    async def _move(
        uow: AbstractUnitOfWork,
        payout: Payout,
        target: PayoutStatus,
        failure_reason: Optional[str],
    ) -> Tuple[bool, bool]:
        """Conditional transition; a refunding target returns the amount only when it wins."""
        changed = await uow.payout_repository.transition(
            payout.id, target, at=utcnow(), failure_reason=failure_reason
        )
        refunded = False
        if changed and target in REFUNDING_PAYOUT_STATUSES:
            refunded = await uow.creator_repository.refund_payout(payout.creator_id, payout.amount)
        return changed, refunded

    async def resubmit_payout(self, payout: Payout) -> Payout:
        """Retry the transfer of a payout still pending without a gateway id.

        The stored idempotency key goes out again, so a transfer that did
        reach the gateway the first time is returned rather than duplicated.
        """
        if payout.status != PayoutStatus.PENDING or payout.gateway_payout_id:
            return payout
        async with self._uow_factory() as uow:
            creator = await uow.creator_repository.get_by_id(payout.creator_id)
        if creator is None or not creator.is_registered_for_payouts:
            raise PayoutDestinationMissingException(payout.creator_id)
        return await self._submit_transfer(payout, creator.gateway_fund_account_id)

    async def _ensure_payout_destination(self, creator: CreatorAccount) -> str:
        if creator.is_registered_for_payouts:
            return creator.gateway_fund_account_id

        bank = creator.bank_account
        contact_id = creator.gateway_contact_id
        if not contact_id:
            contact = await self.executor.execute(
                lambda: self.gateway.create_contact(
                    ContactRequest(
                        name=creator.name,
                        email=creator.email,
                        contact=creator.phone,
                        reference_id=f"creator_{creator.id}",
                    )
                ),
                "payout_creation",
            )
            contact_id = contact.id

        fund_account = await self.executor.execute(
            lambda: self.gateway.create_fund_account(
                FundAccountRequest(
                    contact_id=contact_id,
                    holder_name=bank.holder_name,
                    account_number=bank.account_number,
                    ifsc=bank.ifsc,
                )
            ),
            "payout_creation",
        )
        async with self._uow_factory() as uow:
            await uow.creator_repository.save_payout_destination(
                creator.id, contact_id=contact_id, fund_account_id=fund_account.id
            )
        creator.gateway_contact_id = contact_id
        creator.gateway_fund_account_id = fund_account.id
        logger.info("payout_destination_registered", creator_id=creator.id, contact_id=contact_id)
        return fund_account.id

    @staticmethod
    def _map_rejection(exc: GatewayRejectedException, creator_id: int, amount: int, key: str):
        text = f"{exc.gateway_code or ''} {exc.gateway_description or ''}".lower()
        if "duplicate" in text:
            return DuplicatePayoutException(key)
        if "insufficient" in text:
            return InsufficientBalanceException(requested=amount, source="gateway")
        if "fund_account" in text:
            return PayoutDestinationMissingException(
                creator_id, reason="Payout destination was rejected by the payment service"
            )
        return exc

    async def apply_status_update(
        self,
        gateway_payout_id: str,
        status: str,
        failure_reason: Optional[str] = None,
    ) -> SettlementOutcome:
        """Apply a gateway payout status; refunds on the first refunding transition only."""
        target = map_payout_status(status)
        async with self._uow_factory() as uow:
            payout = await uow.payout_repository.get_by_gateway_payout_id(gateway_payout_id)
            if payout is None:
                logger.warning("payout_status_unknown_payout", gateway_payout_id=gateway_payout_id, status=status)
                return SettlementOutcome(reason="no_matching_entity")
            if target is None or target == payout.status:
                return SettlementOutcome(
                    reason="status_unchanged", entity="payout", entity_id=payout.id, status=payout.status.value
                )

            changed, refunded = await self._move(uow, payout, target, failure_reason)

        logger.info(
            "payout_status_updated",
            payout_id=payout.id,
            gateway_payout_id=gateway_payout_id,
            from_status=payout.status.value,
            to_status=target.value,
            changed=changed,
            refunded=refunded,
        )
        return SettlementOutcome(
            reason=f"payout_{target.value}" if changed else "already_settled",
            entity="payout",
            entity_id=payout.id,
            status=target.value if changed else payout.status.value,
            credited={str(payout.creator_id): payout.amount} if refunded else {},
        )

    async def get_payout_status(self, gateway_payout_id: str) -> GatewayTransfer:
        return await self.executor.execute(lambda: self.gateway.fetch_transfer(gateway_payout_id), "payout_fetch")

    async def sync_payout_status(self, gateway_payout_id: str) -> SettlementOutcome:
        transfer = await self.get_payout_status(gateway_payout_id)
        return await self.apply_status_update(gateway_payout_id, transfer.status, transfer.failure_reason)

    async def list_creator_payouts(self, creator_id: int, limit: int = 20) -> List[Payout]:
        async with self._uow_factory() as uow:
            return await uow.payout_repository.list_by_creator(creator_id, limit=limit)

    async def list_stale_payouts(
        self,
        older_than_seconds: int,
        limit: int = 100,
        *,
        status: PayoutStatus = PayoutStatus.PROCESSING,
    ) -> List[Payout]:
        cutoff = utcnow() - timedelta(seconds=older_than_seconds)
        async with self._uow_factory() as uow:
            return await uow.payout_repository.list_stale(status, updated_before=cutoff, limit=limit)
