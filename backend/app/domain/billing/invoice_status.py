"""
Invoice status derivation and balance bookkeeping.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from backend.app.models.invoice import Invoice
from backend.app.models.billing_enums import InvoiceStatus
from backend.app.domain.values import to_money, ZERO


def compute_invoice_status(
    paid_amount: Decimal,
    total_amount: Decimal,
    due_date: date,
    today: Optional[date] = None
) -> InvoiceStatus:
    """
    Derive the status of a non-cancelled invoice.

    PAID once fully paid, OVERDUE past the due date, PARTIAL when something
    was paid, UNPAID otherwise.
    """
    today = today or datetime.utcnow().date()

    if paid_amount >= total_amount:
        return InvoiceStatus.PAID
    if due_date < today:
        return InvoiceStatus.OVERDUE
    if paid_amount > ZERO:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


def apply_paid_amount(invoice: Invoice, paid_amount: Decimal, today: Optional[date] = None) -> None:
    """Set paid_amount and re-derive remaining_amount and status."""
    paid = max(to_money(paid_amount), ZERO)
    invoice.paid_amount = paid
    invoice.remaining_amount = max(to_money(invoice.total_amount) - paid, ZERO)
    invoice.status = compute_invoice_status(paid, to_money(invoice.total_amount), invoice.due_date, today)
