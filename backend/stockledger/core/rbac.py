"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from stockledger.core.security import decode_access_token


class UserRole(str, Enum):
    """Actor roles issued by the identity provider."""

    LEAD = "lead"
    OPERATOR = "operator"


# Role hierarchy: lead > operator
ROLE_HIERARCHY = {
    UserRole.LEAD: 2,
    UserRole.OPERATOR: 1,
}


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: The actor's database ID.
        username: The actor's display name.
        role: The actor's role (lead/operator).
    """

    def __init__(self, user_id: int, username: str, role: UserRole):
        self.user_id = user_id
        self.id = user_id
        self.username = username
        self.role = role


async def get_current_user(request: Request) -> TokenData:
    """Get the current authenticated actor from the Bearer token."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    role = payload.get("role")

    if user_id is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_role = UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role in token",
        )

    try:
        actor_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid subject in token",
        )

    return TokenData(user_id=actor_id, username=payload.get("username", ""), role=user_role)


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


# Common role dependencies
RequireLead = Annotated[TokenData, Depends(require_role(UserRole.LEAD))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
