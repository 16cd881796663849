"""
Invoice and payment ledger tests.
"""

import re
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from backend.app.core.exceptions import InvalidStateError, BusinessRuleViolationError, ResourceNotFoundError
from backend.app.models.rental_enums import RentalStatus
from backend.app.models.billing_enums import InvoiceStatus, PaymentMethod
from backend.app.schemas.billing import InvoiceFromRentalRequest, InvoiceUpdate, PaymentCreate, PaymentUpdate
from backend.app.services.history import get_status_history
from backend.app.domain.rental.rental_order_service import RentalOrderService
from backend.app.domain.billing.invoice_service import InvoiceService, calculate_invoice_amounts
from backend.app.domain.billing.payment_service import PaymentService
from backend.app.domain.billing.invoice_status import compute_invoice_status

TODAY = date(2026, 5, 10)


@pytest.mark.parametrize("paid, total, due, expected", [
    (Decimal("0"), Decimal("1000"), TODAY - timedelta(days=1), InvoiceStatus.OVERDUE),
    (Decimal("0"), Decimal("1000"), TODAY, InvoiceStatus.UNPAID),
    (Decimal("500"), Decimal("1000"), TODAY, InvoiceStatus.PARTIAL),
    (Decimal("500"), Decimal("1000"), TODAY - timedelta(days=1), InvoiceStatus.OVERDUE),
    (Decimal("1000"), Decimal("1000"), TODAY - timedelta(days=30), InvoiceStatus.PAID),
])
def test_compute_invoice_status(paid, total, due, expected):
    assert compute_invoice_status(paid, total, due, today=TODAY) == expected


def test_invoice_amounts():
    sub_total, tax, total = calculate_invoice_amounts(Decimal("1500000"), Decimal("0"), Decimal("10"))
    assert (sub_total, tax, total) == (Decimal("1500000.00"), Decimal("150000.00"), Decimal("1650000.00"))

    sub_total, tax, total = calculate_invoice_amounts(Decimal("1500000"), Decimal("100000"), Decimal("8"))
    assert (sub_total, tax, total) == (Decimal("1400000.00"), Decimal("112000.00"), Decimal("1512000.00"))


def test_invoice_discount_cannot_exceed_order_total():
    with pytest.raises(BusinessRuleViolationError):
        calculate_invoice_amounts(Decimal("1000"), Decimal("1001"), Decimal("10"))


@pytest.fixture
async def completed_order(db_session, order_request):
    order = await RentalOrderService.create_order(db_session, order_request(), actor="counter.staff")
    await RentalOrderService.confirm_order(db_session, order.id)
    await RentalOrderService.start_order(db_session, order.id)
    await RentalOrderService.complete_order(db_session, order.id)
    return order


@pytest.fixture
async def invoice(db_session, completed_order):
    return await InvoiceService.create_from_rental(
        db_session, completed_order.id, InvoiceFromRentalRequest(tax_rate=Decimal("10")), actor="counter.staff"
    )


def _payment(invoice, amount, **overrides) -> PaymentCreate:
    fields = {
        "invoice_id": invoice.id,
        "payment_date": datetime.utcnow(),
        "amount": Decimal(amount),
        "payment_method": PaymentMethod.CASH,
    }
    fields.update(overrides)
    return PaymentCreate(**fields)


async def test_invoice_from_completed_order(db_session, completed_order, invoice):
    assert re.fullmatch(rf"HD{datetime.utcnow():%Y%m%d}\d{{3}}", invoice.invoice_number)
    assert invoice.sub_total == Decimal("1500000.00")
    assert invoice.tax_amount == Decimal("150000.00")
    assert invoice.total_amount == Decimal("1650000.00")
    assert invoice.paid_amount == Decimal("0")
    assert invoice.remaining_amount == Decimal("1650000.00")
    assert invoice.status == InvoiceStatus.UNPAID
    assert invoice.due_date == invoice.invoice_date + timedelta(days=7)

    assert len(invoice.details) == 1
    line = invoice.details[0]
    assert line.description.startswith("Rental of vehicle 30A-12345 from ")
    assert line.quantity == Decimal("3")
    assert line.unit_price == Decimal("500000.00")
    assert line.amount == Decimal("1500000.00")

    assert completed_order.status == RentalStatus.INVOICED
    history = await get_status_history(db_session, completed_order.id)
    assert history[0].old_status == RentalStatus.COMPLETED
    assert history[0].new_status == RentalStatus.INVOICED


async def test_second_invoice_for_same_order_is_rejected(db_session, completed_order, invoice):
    with pytest.raises((InvalidStateError, BusinessRuleViolationError)):
        await InvoiceService.create_from_rental(
            db_session, completed_order.id, InvoiceFromRentalRequest(tax_rate=Decimal("10"))
        )


async def test_invoice_requires_completed_order(db_session, order_request):
    order = await RentalOrderService.create_order(db_session, order_request())

    with pytest.raises(InvalidStateError):
        await InvoiceService.create_from_rental(db_session, order.id, InvoiceFromRentalRequest())


async def test_invoiced_order_cannot_be_cancelled(db_session, completed_order, invoice):
    with pytest.raises(InvalidStateError):
        await RentalOrderService.cancel_order(db_session, completed_order.id)


async def test_full_payment_marks_invoice_paid(db_session, invoice):
    payment = await PaymentService.create_payment(db_session, _payment(invoice, "1650000"), actor="cashier")

    assert re.fullmatch(rf"PT{datetime.utcnow():%Y%m%d}\d{{3}}", payment.payment_number)
    assert invoice.paid_amount == Decimal("1650000.00")
    assert invoice.remaining_amount == Decimal("0")
    assert invoice.status == InvoiceStatus.PAID


async def test_partial_payments(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "650000"))
    assert invoice.status == InvoiceStatus.PARTIAL
    assert invoice.remaining_amount == Decimal("1000000.00")

    await PaymentService.create_payment(
        db_session, _payment(invoice, "1000000", payment_method=PaymentMethod.BANK_TRANSFER, transaction_code="FT123")
    )
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_amount + invoice.remaining_amount == invoice.total_amount


async def test_overpayment_is_rejected_without_changes(db_session, invoice):
    with pytest.raises(BusinessRuleViolationError) as exc_info:
        await PaymentService.create_payment(db_session, _payment(invoice, "2000000"))

    assert "2,000,000" in exc_info.value.message
    assert "1,650,000" in exc_info.value.message
    assert invoice.paid_amount == Decimal("0")
    assert invoice.status == InvoiceStatus.UNPAID
    assert await InvoiceService.list_payments(db_session, invoice.id) == []


async def test_payment_on_paid_invoice_is_rejected(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "1650000"))

    with pytest.raises(InvalidStateError):
        await PaymentService.create_payment(db_session, _payment(invoice, "1"))


async def test_update_payment_applies_difference(db_session, invoice):
    payment = await PaymentService.create_payment(db_session, _payment(invoice, "500000"))

    await PaymentService.update_payment(
        db_session, payment.id,
        PaymentUpdate(payment_date=payment.payment_date, amount=Decimal("700000"), payment_method=PaymentMethod.CASH)
    )
    assert invoice.paid_amount == Decimal("700000.00")
    assert invoice.remaining_amount == Decimal("950000.00")

    with pytest.raises(BusinessRuleViolationError):
        await PaymentService.update_payment(
            db_session, payment.id,
            PaymentUpdate(payment_date=payment.payment_date, amount=Decimal("1700000"), payment_method=PaymentMethod.CASH)
        )
    assert invoice.paid_amount == Decimal("700000.00")


async def test_delete_payment_reverses_amount(db_session, invoice):
    payment = await PaymentService.create_payment(db_session, _payment(invoice, "1650000"))
    assert invoice.status == InvoiceStatus.PAID

    await PaymentService.delete_payment(db_session, payment.id)

    assert invoice.paid_amount == Decimal("0")
    assert invoice.remaining_amount == Decimal("1650000.00")
    assert invoice.status == InvoiceStatus.UNPAID
    with pytest.raises(ResourceNotFoundError):
        await PaymentService.get_payment(db_session, payment.id)


async def test_update_invoice_recomputes_amounts(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "500000"))

    updated = await InvoiceService.update_invoice(
        db_session, invoice.id,
        InvoiceUpdate(
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            tax_rate=Decimal("0"),
            discount_amount=Decimal("100000")
        )
    )

    assert updated.total_amount == Decimal("1400000.00")
    assert updated.remaining_amount == Decimal("900000.00")
    assert updated.status == InvoiceStatus.PARTIAL


async def test_update_invoice_below_paid_is_rejected(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "1500000"))

    with pytest.raises(BusinessRuleViolationError):
        await InvoiceService.update_invoice(
            db_session, invoice.id,
            InvoiceUpdate(
                invoice_date=invoice.invoice_date,
                due_date=invoice.due_date,
                tax_rate=Decimal("0"),
                discount_amount=Decimal("100000")
            )
        )


async def test_paid_invoice_is_locked(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "1650000"))

    with pytest.raises(InvalidStateError):
        await InvoiceService.update_invoice(
            db_session, invoice.id,
            InvoiceUpdate(invoice_date=invoice.invoice_date, due_date=invoice.due_date, tax_rate=Decimal("5"))
        )


async def test_past_due_date_makes_invoice_overdue(db_session, invoice):
    past = datetime.utcnow().date() - timedelta(days=10)
    await InvoiceService.update_invoice(
        db_session, invoice.id,
        InvoiceUpdate(invoice_date=past, due_date=past + timedelta(days=1), tax_rate=Decimal("10"))
    )
    assert invoice.status == InvoiceStatus.OVERDUE

    await PaymentService.create_payment(db_session, _payment(invoice, "100000"))
    assert invoice.status == InvoiceStatus.OVERDUE


async def test_delete_invoice_reopens_order(db_session, completed_order, invoice):
    await InvoiceService.delete_invoice(db_session, invoice.id, actor="counter.staff")

    assert completed_order.status == RentalStatus.COMPLETED
    history = await get_status_history(db_session, completed_order.id)
    assert history[0].new_status == RentalStatus.COMPLETED

    # The order can be invoiced again
    again = await InvoiceService.create_from_rental(
        db_session, completed_order.id, InvoiceFromRentalRequest(tax_rate=Decimal("10"))
    )
    assert again.id != invoice.id


async def test_invoice_with_payments_cannot_be_deleted(db_session, invoice):
    await PaymentService.create_payment(db_session, _payment(invoice, "100000"))

    with pytest.raises(InvalidStateError):
        await InvoiceService.delete_invoice(db_session, invoice.id)
