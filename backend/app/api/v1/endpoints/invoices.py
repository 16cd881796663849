"""
Invoice API Endpoints.

Invoices are issued from COMPLETED rental orders and settled by payments.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Body, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.redis_client import get_redis
from backend.app.core.dependencies import get_current_user, get_actor
from backend.app.core.guards import require_role, STAFF_ROLES
from backend.app.models.billing_enums import InvoiceStatus
from backend.app.schemas.common import ApiResponse, PageResponse
from backend.app.schemas.billing import (
    InvoiceFromRentalRequest, InvoiceUpdate, InvoiceResponse, PaymentResponse
)
from backend.app.domain.billing.invoice_service import InvoiceService
from backend.app.services.notification_service import NotificationService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post(
    "/from-rental/{rental_order_id}",
    response_model=ApiResponse[InvoiceResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_invoice_from_rental(
    rental_order_id: int = Path(..., description="Rental order ID"),
    request: InvoiceFromRentalRequest = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Invoice a COMPLETED rental order.

    The order moves to INVOICED; a second invoice for the same order is refused.
    """
    invoice = await InvoiceService.create_from_rental(
        db, rental_order_id, request, actor=get_actor(current_user)
    )
    await db.commit()

    await NotificationService.invoice_changed(redis, invoice)
    return ApiResponse(
        data=InvoiceResponse.model_validate(invoice),
        message=f"Invoice {invoice.invoice_number} created"
    )


@router.get("", response_model=ApiResponse[PageResponse[InvoiceResponse]])
async def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=100),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invoices, total = await InvoiceService.list_invoices(
        db, page=page, page_size=page_size, status=status_filter,
        customer_id=customer_id, search=search
    )
    return ApiResponse(data=PageResponse(
        items=[InvoiceResponse.model_validate(i) for i in invoices],
        total=total,
        page=page,
        page_size=page_size
    ))


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def get_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invoice = await InvoiceService.get_invoice(db, invoice_id)
    return ApiResponse(data=InvoiceResponse.model_validate(invoice))


@router.put("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def update_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    invoice_in: InvoiceUpdate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Change dates, tax rate or discount of an invoice that is not PAID or CANCELLED."""
    invoice = await InvoiceService.update_invoice(db, invoice_id, invoice_in, actor=get_actor(current_user))
    await db.commit()

    await NotificationService.invoice_changed(redis, invoice)
    return ApiResponse(
        data=InvoiceResponse.model_validate(invoice),
        message=f"Invoice {invoice.invoice_number} updated"
    )


@router.delete("/{invoice_id}", response_model=ApiResponse)
async def delete_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Delete an unpaid invoice; its rental order goes back to COMPLETED."""
    await InvoiceService.delete_invoice(db, invoice_id, actor=get_actor(current_user))
    await db.commit()
    return ApiResponse(message="Invoice deleted")


@router.get("/{invoice_id}/payments", response_model=ApiResponse[List[PaymentResponse]])
async def list_invoice_payments(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    payments = await InvoiceService.list_payments(db, invoice_id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])
