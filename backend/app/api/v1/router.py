"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    rental_orders, invoices, payments, promotions, vehicles
)

router = APIRouter()

# Rental workflow
router.include_router(rental_orders.router)
router.include_router(promotions.router)
router.include_router(vehicles.router)

# Billing
router.include_router(invoices.router)
router.include_router(payments.router)
