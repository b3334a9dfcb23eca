"""
Security guards for role-based access control.

The engine performs no authorization itself; the HTTP binding uses these
guards so mutating and history routes only run for authorized principals.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from tracking_service.app.models.enums import UserRole
from tracking_service.app.core.dependencies import get_current_principal


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/locations")
        async def submit(principal: dict = Depends(require_role([UserRole.OPERATOR]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the principal's role

    Raises:
        HTTPException 403 if the role is missing, unknown, or not allowed
    """
    async def role_checker(principal: dict = Depends(get_current_principal)) -> dict:
        role_str = principal.get("role")

        if not role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        # Convert string role to UserRole enum
        try:
            role = UserRole(role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return principal

    return role_checker
