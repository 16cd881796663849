"""
Security guards for role-based access control.

Provides dependencies for protecting write endpoints.
"""

from typing import List
from fastapi import Depends
from backend.app.core.exceptions import InsufficientPermissionsError
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.post("/rental-orders")
        async def create_order(current_user: dict = Depends(require_role(STAFF_ROLES))):
            ...
    
    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint
        
    Returns:
        FastAPI dependency function that validates user role
        
    Raises:
        InsufficientPermissionsError: 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")
        
        if not user_role_str:
            raise InsufficientPermissionsError("Role information missing from token")
        
        # Convert string role to UserRole enum
        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise InsufficientPermissionsError("Invalid role in token")
        
        # Check if user role is in allowed roles
        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}",
                details={"role": user_role.value}
            )
        
        return current_user
    
    return role_checker


# Admins and counter staff run the rental and billing workflow
STAFF_ROLES = [UserRole.ADMIN, UserRole.EMPLOYEE]
