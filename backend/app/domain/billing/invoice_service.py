"""
Invoice Service (Domain Logic).

Turns a COMPLETED rental order into an invoice and keeps the invoice's
amounts consistent when it is edited or removed. Methods only flush; the
caller commits.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    ResourceNotFoundError, InvalidStateError, BusinessRuleViolationError
)
from backend.app.models.invoice import Invoice, InvoiceDetail
from backend.app.models.payment import Payment
from backend.app.models.rental_order import RentalOrder
from backend.app.models.customer import Customer
from backend.app.models.rental_enums import RentalStatus
from backend.app.models.billing_enums import InvoiceStatus
from backend.app.schemas.billing import InvoiceFromRentalRequest, InvoiceUpdate
from backend.app.services.document_numbers import next_document_number, INVOICE_PREFIX
from backend.app.domain.rental.lookups import get_rental_order, get_vehicle
from backend.app.domain.rental.rental_order_service import RentalOrderService
from backend.app.domain.billing.invoice_status import apply_paid_amount
from backend.app.domain.values import to_money, ZERO

logger = logging.getLogger("drivenow.billing")

LOCKED_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
DELETABLE_STATUSES = (InvoiceStatus.UNPAID, InvoiceStatus.OVERDUE)


def calculate_invoice_amounts(
    order_total: Decimal,
    discount_amount: Decimal,
    tax_rate: Decimal
) -> Tuple[Decimal, Decimal, Decimal]:
    """
    (sub_total, tax_amount, total_amount) for an order total.

    sub_total = order_total - discount
    tax_amount = sub_total * tax_rate / 100
    total_amount = sub_total + tax_amount
    """
    discount = to_money(discount_amount)
    if discount > to_money(order_total):
        raise BusinessRuleViolationError(
            f"Invoice discount ({discount:,.0f}) exceeds the order total ({to_money(order_total):,.0f})",
            details={"discount_amount": discount, "order_total": to_money(order_total)}
        )

    sub_total = to_money(order_total - discount)
    tax_amount = to_money(sub_total * Decimal(tax_rate) / Decimal(100))
    return sub_total, tax_amount, to_money(sub_total + tax_amount)


async def _get_live_invoice_for_order(db: AsyncSession, rental_order_id: int) -> Optional[Invoice]:
    result = await db.execute(
        select(Invoice).where(Invoice.rental_order_id == rental_order_id, Invoice.is_deleted == False)
    )
    return result.scalars().first()


class InvoiceService:

    @staticmethod
    async def get_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
        result = await db.execute(
            select(Invoice).where(Invoice.id == invoice_id, Invoice.is_deleted == False)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return invoice

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: Optional[InvoiceStatus] = None,
        customer_id: Optional[int] = None,
        search: Optional[str] = None
    ) -> Tuple[List[Invoice], int]:
        """Page through live invoices; `search` matches invoice number, order number or customer name."""
        query = select(Invoice).where(Invoice.is_deleted == False)

        if status:
            query = query.where(Invoice.status == status)
        if customer_id:
            query = query.where(Invoice.customer_id == customer_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = (
                query.join(RentalOrder, RentalOrder.id == Invoice.rental_order_id)
                .join(Customer, Customer.id == Invoice.customer_id)
                .where(or_(
                    Invoice.invoice_number.ilike(pattern),
                    RentalOrder.order_number.ilike(pattern),
                    Customer.full_name.ilike(pattern)
                ))
            )

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await db.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def list_payments(db: AsyncSession, invoice_id: int) -> List[Payment]:
        await InvoiceService.get_invoice(db, invoice_id)
        result = await db.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id, Payment.is_deleted == False)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_from_rental(
        db: AsyncSession,
        rental_order_id: int,
        data: InvoiceFromRentalRequest,
        actor: Optional[str] = None
    ) -> Invoice:
        """
        Invoice a completed rental order.

        Flow:
        1. Order must be COMPLETED and not invoiced yet
        2. Compute sub_total / tax / total from the order total
        3. Persist invoice with one detail line for the rental period
        4. Move the order to INVOICED (with history row)

        Raises:
            ResourceNotFoundError: Order missing
            InvalidStateError: Order not COMPLETED
            BusinessRuleViolationError: Order already has a live invoice, or discount too large
        """
        # 1. Preconditions
        order = await get_rental_order(db, rental_order_id)
        if order.status != RentalStatus.COMPLETED:
            raise InvalidStateError(
                "rental order", order.status, "invoice",
                message=f"Only COMPLETED orders can be invoiced (order is {order.status.value})"
            )

        existing = await _get_live_invoice_for_order(db, order.id)
        if existing:
            raise BusinessRuleViolationError(
                f"Order {order.order_number} already has invoice {existing.invoice_number}",
                details={"rental_order_id": order.id, "invoice_id": existing.id}
            )

        # 2. Amounts
        sub_total, tax_amount, total_amount = calculate_invoice_amounts(
            order.total_amount, data.discount_amount, data.tax_rate
        )

        today = datetime.utcnow().date()
        invoice_date = data.invoice_date or today
        due_date = data.due_date or invoice_date + timedelta(days=settings.default_invoice_due_days)
        if due_date < invoice_date:
            raise BusinessRuleViolationError(
                "Due date must not be before the invoice date",
                details={"invoice_date": invoice_date.isoformat(), "due_date": due_date.isoformat()}
            )

        # 3. Persist
        vehicle = await get_vehicle(db, order.vehicle_id)
        invoice = Invoice(
            invoice_number=await next_document_number(db, INVOICE_PREFIX),
            rental_order_id=order.id,
            customer_id=order.customer_id,
            invoice_date=invoice_date,
            due_date=due_date,
            sub_total=sub_total,
            tax_rate=to_money(data.tax_rate),
            tax_amount=tax_amount,
            discount_amount=to_money(data.discount_amount),
            total_amount=total_amount,
            paid_amount=ZERO,
            remaining_amount=total_amount,
            status=InvoiceStatus.UNPAID,
            notes=data.notes,
            created_by=actor,
            updated_by=actor
        )
        invoice.details.append(InvoiceDetail(
            description=(
                f"Rental of vehicle {vehicle.code} "
                f"from {order.start_date:%d/%m/%Y} to {order.end_date:%d/%m/%Y}"
            ),
            quantity=Decimal(order.total_days),
            unit_price=order.daily_rental_price,
            amount=order.subtotal,
            sort_order=0
        ))
        db.add(invoice)
        await db.flush()

        # 4. Order -> INVOICED
        await RentalOrderService.mark_invoiced(db, order, invoice.invoice_number, actor)
        await db.flush()

        logger.info(
            "Invoice %s issued for order %s by %s (total %s)",
            invoice.invoice_number, order.order_number, actor, invoice.total_amount
        )
        return invoice

    @staticmethod
    async def update_invoice(
        db: AsyncSession,
        invoice_id: int,
        data: InvoiceUpdate,
        actor: Optional[str] = None
    ) -> Invoice:
        """
        Edit dates, tax and discount, recomputing amounts from the order total.

        Raises:
            InvalidStateError: Invoice PAID or CANCELLED
            BusinessRuleViolationError: New total below what was already paid
        """
        invoice = await InvoiceService.get_invoice(db, invoice_id)
        if invoice.status in LOCKED_STATUSES:
            raise InvalidStateError("invoice", invoice.status, "edit")

        if data.due_date < data.invoice_date:
            raise BusinessRuleViolationError(
                "Due date must not be before the invoice date",
                details={"invoice_date": data.invoice_date.isoformat(), "due_date": data.due_date.isoformat()}
            )

        order = await db.get(RentalOrder, invoice.rental_order_id)
        if not order:
            raise ResourceNotFoundError("Rental order", invoice.rental_order_id)

        sub_total, tax_amount, total_amount = calculate_invoice_amounts(
            order.total_amount, data.discount_amount, data.tax_rate
        )
        if total_amount < invoice.paid_amount:
            raise BusinessRuleViolationError(
                f"New invoice total ({total_amount:,.0f}) is below the amount already paid ({invoice.paid_amount:,.0f})",
                details={"total_amount": total_amount, "paid_amount": invoice.paid_amount}
            )

        invoice.invoice_date = data.invoice_date
        invoice.due_date = data.due_date
        invoice.tax_rate = to_money(data.tax_rate)
        invoice.discount_amount = to_money(data.discount_amount)
        invoice.sub_total = sub_total
        invoice.tax_amount = tax_amount
        invoice.total_amount = total_amount
        invoice.notes = data.notes
        invoice.updated_by = actor
        apply_paid_amount(invoice, invoice.paid_amount)
        await db.flush()

        logger.info("Invoice %s updated by %s (status %s)", invoice.invoice_number, actor, invoice.status.value)
        return invoice

    @staticmethod
    async def delete_invoice(db: AsyncSession, invoice_id: int, actor: Optional[str] = None) -> None:
        """
        Soft delete an invoice nothing has been paid on.

        The rental order goes back to COMPLETED so it can be invoiced again.
        """
        invoice = await InvoiceService.get_invoice(db, invoice_id)
        if invoice.status not in DELETABLE_STATUSES or invoice.paid_amount > ZERO:
            raise InvalidStateError(
                "invoice", invoice.status, "delete",
                message="Only invoices with no payments (UNPAID or OVERDUE) can be deleted"
            )

        invoice.is_deleted = True
        invoice.updated_by = actor

        order = await db.get(RentalOrder, invoice.rental_order_id)
        if order and not order.is_deleted and order.status == RentalStatus.INVOICED:
            await RentalOrderService.reopen_invoiced(db, order, invoice.invoice_number, actor)
        await db.flush()

        logger.info("Invoice %s deleted by %s", invoice.invoice_number, actor)
