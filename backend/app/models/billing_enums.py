"""
Billing enumerations.
"""

import enum


class InvoiceStatus(str, enum.Enum):
    """Invoice status, derived from paid amount, total and due date."""
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    """Payment method enumeration."""
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"


class PromotionType(str, enum.Enum):
    """How a promotion's value is applied."""
    PERCENTAGE = "PERCENTAGE"  # value is a percent of the subtotal
    FIXED_AMOUNT = "FIXED_AMOUNT"  # value is a flat amount


class PromotionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
