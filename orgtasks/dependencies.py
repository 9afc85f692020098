from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from orgtasks.core.security import extract_user_id
from orgtasks.core.exceptions import UnauthorizedException
from orgtasks.database import get_db
from orgtasks.repositories.user_repository import UserRepository
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.models.user import User

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to validate JWT and load the user.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using shared SECRET_KEY
    3. Extract user ID from 'sub' claim
    4. Load the User record; unknown or inactive users are rejected

    Raises:
        HTTPException 401: If token missing, invalid or expired, or user unknown/inactive
    """
    try:
        if credentials is None:
            raise UnauthorizedException("Not authenticated")

        user_id = extract_user_id(credentials.credentials)

        user = UserRepository(db).get_by_id(user_id)
        if user is None or not user.is_active:
            raise UnauthorizedException("User not found or inactive")

        return user

    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    """
    FastAPI dependency producing the per-request principal.

    Services receive this explicitly; nothing downstream reads identity from
    request or global state.
    """
    return Principal.from_user(user)


async def get_client_info(request: Request) -> ClientInfo:
    """FastAPI dependency capturing caller address and User-Agent for the audit trail."""
    return ClientInfo.from_values(
        request.client.host if request.client else None,
        request.headers.get("user-agent"),
    )
