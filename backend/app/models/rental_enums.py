"""
Rental and vehicle enumerations.
"""

import enum


class RentalStatus(str, enum.Enum):
    """Rental order lifecycle."""
    DRAFT = "DRAFT"  # Quoted, vehicle not held
    CONFIRMED = "CONFIRMED"  # Booking accepted
    IN_PROGRESS = "IN_PROGRESS"  # Customer has the vehicle
    COMPLETED = "COMPLETED"  # Vehicle returned, awaiting invoice
    INVOICED = "INVOICED"  # Terminal, billed
    CANCELLED = "CANCELLED"  # Terminal


class VehicleStatus(str, enum.Enum):
    """Vehicle availability status."""
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"
    REPAIR = "REPAIR"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    IN_TRANSIT = "IN_TRANSIT"


class VehicleHistoryAction(str, enum.Enum):
    """Vehicle history action types."""
    CREATED = "CREATED"
    RENTED = "RENTED"
    RETURNED = "RETURNED"
    STATUS_CHANGED = "STATUS_CHANGED"
    IN = "IN"
    OUT = "OUT"
    MAINTENANCE = "MAINTENANCE"
    REPAIR = "REPAIR"
    MAINTENANCE_COMPLETED = "MAINTENANCE_COMPLETED"
    REPAIR_COMPLETED = "REPAIR_COMPLETED"
    RENTAL_CANCELLED = "RENTAL_CANCELLED"


class HistoryReferenceType(str, enum.Enum):
    """Kind of record a vehicle history row points back to."""
    RENTAL_ORDER = "RENTAL_ORDER"
    INVOICE = "INVOICE"
    MAINTENANCE = "MAINTENANCE"
    IN_OUT = "IN_OUT"


# Statuses from which a vehicle cannot be handed to a customer
OUT_OF_CIRCULATION = {
    VehicleStatus.MAINTENANCE,
    VehicleStatus.REPAIR,
    VehicleStatus.OUT_OF_SERVICE,
    VehicleStatus.IN_TRANSIT,
}
