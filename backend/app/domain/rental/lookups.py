"""
Lookups shared by the rental and billing services.

Every getter ignores soft-deleted rows and raises ResourceNotFoundError.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.models.customer import Customer
from backend.app.models.employee import Employee
from backend.app.models.vehicle import Vehicle
from backend.app.models.rental_order import RentalOrder


async def get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle or vehicle.is_deleted:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer or customer.is_deleted:
        raise ResourceNotFoundError("Customer", customer_id)
    return customer


async def get_employee(db: AsyncSession, employee_id: int) -> Employee:
    employee = await db.get(Employee, employee_id)
    if not employee or employee.is_deleted:
        raise ResourceNotFoundError("Employee", employee_id)
    return employee


async def get_rental_order(db: AsyncSession, order_id: int) -> RentalOrder:
    result = await db.execute(
        select(RentalOrder).where(RentalOrder.id == order_id, RentalOrder.is_deleted == False)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise ResourceNotFoundError("Rental order", order_id)
    return order
