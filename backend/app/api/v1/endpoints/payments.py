"""
Payment API Endpoints.

Payments settle invoices, fully or in parts.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Body, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.redis_client import get_redis
from backend.app.core.dependencies import get_current_user, get_actor
from backend.app.core.guards import require_role, STAFF_ROLES
from backend.app.models.invoice import Invoice
from backend.app.schemas.common import ApiResponse, PageResponse
from backend.app.schemas.billing import PaymentCreate, PaymentUpdate, PaymentResponse
from backend.app.domain.billing.payment_service import PaymentService
from backend.app.services.notification_service import NotificationService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=ApiResponse[PaymentResponse], status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_in: PaymentCreate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Record a payment against an invoice.

    The amount may not exceed the invoice's remaining balance.
    """
    payment = await PaymentService.create_payment(db, payment_in, actor=get_actor(current_user))
    await db.commit()

    invoice = await db.get(Invoice, payment.invoice_id)
    await NotificationService.payment_recorded(redis, payment, invoice)
    return ApiResponse(
        data=PaymentResponse.model_validate(payment),
        message=f"Payment {payment.payment_number} recorded"
    )


@router.get("", response_model=ApiResponse[PageResponse[PaymentResponse]])
async def list_payments(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=100),
    invoice_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    payments, total = await PaymentService.list_payments(
        db, page=page, page_size=page_size, invoice_id=invoice_id
    )
    return ApiResponse(data=PageResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        page_size=page_size
    ))


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
async def get_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    payment = await PaymentService.get_payment(db, payment_id)
    return ApiResponse(data=PaymentResponse.model_validate(payment))


@router.put("/{payment_id}", response_model=ApiResponse[PaymentResponse])
async def update_payment(
    payment_id: int = Path(..., description="Payment ID"),
    payment_in: PaymentUpdate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    payment = await PaymentService.update_payment(db, payment_id, payment_in, actor=get_actor(current_user))
    await db.commit()

    invoice = await db.get(Invoice, payment.invoice_id)
    await NotificationService.invoice_changed(redis, invoice)
    return ApiResponse(
        data=PaymentResponse.model_validate(payment),
        message=f"Payment {payment.payment_number} updated"
    )


@router.delete("/{payment_id}", response_model=ApiResponse)
async def delete_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Delete a payment; its amount goes back onto the invoice balance."""
    invoice = await PaymentService.delete_payment(db, payment_id, actor=get_actor(current_user))
    await db.commit()

    await NotificationService.invoice_changed(redis, invoice)
    return ApiResponse(message="Payment deleted")
