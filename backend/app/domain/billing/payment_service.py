"""
Payment Service (Domain Logic).

Records payments against invoices. Every create/update/delete moves the
invoice's paid_amount by the same amount and re-derives remaining_amount
and status, so the invoice always reflects the sum of its live payments.
"""

import logging
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from backend.app.core.exceptions import (
    ResourceNotFoundError, InvalidStateError, BusinessRuleViolationError
)
from backend.app.models.invoice import Invoice
from backend.app.models.payment import Payment
from backend.app.models.billing_enums import InvoiceStatus
from backend.app.schemas.billing import PaymentCreate, PaymentUpdate
from backend.app.services.document_numbers import next_document_number, PAYMENT_PREFIX
from backend.app.domain.billing.invoice_status import apply_paid_amount
from backend.app.domain.values import to_money, naive_utc, ZERO

logger = logging.getLogger("drivenow.billing")


async def _get_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(
        select(Invoice).where(Invoice.id == invoice_id, Invoice.is_deleted == False)
    )
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise ResourceNotFoundError("Invoice", invoice_id)
    return invoice


def _ensure_within_balance(amount, remaining) -> None:
    if amount > remaining:
        raise BusinessRuleViolationError(
            f"Payment amount ({amount:,.0f}) exceeds the remaining balance ({remaining:,.0f})",
            details={"amount": amount, "remaining_amount": remaining}
        )


class PaymentService:

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
        result = await db.execute(
            select(Payment).where(Payment.id == payment_id, Payment.is_deleted == False)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        invoice_id: Optional[int] = None
    ) -> Tuple[List[Payment], int]:
        query = select(Payment).where(Payment.is_deleted == False)
        if invoice_id:
            query = query.where(Payment.invoice_id == invoice_id)

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await db.execute(
            query.order_by(Payment.payment_date.desc(), Payment.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def create_payment(db: AsyncSession, data: PaymentCreate, actor: Optional[str] = None) -> Payment:
        """
        Record a payment.

        Raises:
            ResourceNotFoundError: Invoice missing
            InvalidStateError: Invoice PAID or CANCELLED
            BusinessRuleViolationError: Amount not positive or above the remaining balance
        """
        invoice = await _get_invoice(db, data.invoice_id)
        if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
            raise InvalidStateError(
                "invoice", invoice.status, "record a payment on",
                message=f"Invoice {invoice.invoice_number} is {invoice.status.value} and accepts no payments"
            )

        amount = to_money(data.amount)
        if amount <= ZERO:
            raise BusinessRuleViolationError("Payment amount must be greater than zero", details={"amount": amount})
        _ensure_within_balance(amount, to_money(invoice.remaining_amount))

        payment = Payment(
            payment_number=await next_document_number(db, PAYMENT_PREFIX),
            invoice_id=invoice.id,
            payment_date=naive_utc(data.payment_date),
            amount=amount,
            payment_method=data.payment_method,
            bank_account=data.bank_account,
            transaction_code=data.transaction_code,
            notes=data.notes,
            created_by=actor,
            updated_by=actor
        )
        db.add(payment)

        apply_paid_amount(invoice, to_money(invoice.paid_amount) + amount)
        invoice.updated_by = actor
        await db.flush()

        logger.info(
            "Payment %s of %s recorded on invoice %s by %s (invoice now %s)",
            payment.payment_number, amount, invoice.invoice_number, actor, invoice.status.value
        )
        return payment

    @staticmethod
    async def update_payment(
        db: AsyncSession,
        payment_id: int,
        data: PaymentUpdate,
        actor: Optional[str] = None
    ) -> Payment:
        """Correct a payment; only the difference to the old amount hits the invoice."""
        payment = await PaymentService.get_payment(db, payment_id)
        invoice = await _get_invoice(db, payment.invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidStateError("invoice", invoice.status, "change a payment on")

        amount = to_money(data.amount)
        if amount <= ZERO:
            raise BusinessRuleViolationError("Payment amount must be greater than zero", details={"amount": amount})

        delta = amount - to_money(payment.amount)
        if delta > ZERO:
            _ensure_within_balance(delta, to_money(invoice.remaining_amount))

        payment.payment_date = naive_utc(data.payment_date)
        payment.amount = amount
        payment.payment_method = data.payment_method
        payment.bank_account = data.bank_account
        payment.transaction_code = data.transaction_code
        payment.notes = data.notes
        payment.updated_by = actor

        apply_paid_amount(invoice, to_money(invoice.paid_amount) + delta)
        invoice.updated_by = actor
        await db.flush()

        logger.info(
            "Payment %s changed by %s (delta %s, invoice now %s)",
            payment.payment_number, actor, delta, invoice.status.value
        )
        return payment

    @staticmethod
    async def delete_payment(db: AsyncSession, payment_id: int, actor: Optional[str] = None) -> Invoice:
        """Soft delete a payment and take its amount back off the invoice."""
        payment = await PaymentService.get_payment(db, payment_id)
        invoice = await _get_invoice(db, payment.invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidStateError("invoice", invoice.status, "remove a payment from")

        payment.is_deleted = True
        payment.updated_by = actor

        apply_paid_amount(invoice, to_money(invoice.paid_amount) - to_money(payment.amount))
        invoice.updated_by = actor
        await db.flush()

        logger.info(
            "Payment %s deleted by %s (invoice %s now %s)",
            payment.payment_number, actor, invoice.invoice_number, invoice.status.value
        )
        return invoice
