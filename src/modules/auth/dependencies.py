"""Auth dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.core.dependencies import MongoDB
from src.core.exceptions import ForbiddenError, UnauthorizedError
from src.modules.auth.schemas import Principal
from src.modules.auth.security import decode_access_token
from src.modules.auth.services import get_user_by_id

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_principal(
    db: MongoDB,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal | None:
    """Resolve the caller if a bearer token was sent.

    A token that is present but invalid is still rejected; only a missing
    token yields an anonymous caller.
    """
    if credentials is None:
        return None

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Could not validate credentials")

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    if not user.is_active:
        raise ForbiddenError("Inactive user")

    return Principal(user_id=str(user.id), role=user.role)


async def get_current_principal(
    principal: Principal | None = Depends(get_optional_principal),
) -> Principal:
    """Require an authenticated caller."""
    if principal is None:
        raise UnauthorizedError()
    return principal


# Type aliases for dependency injection
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
