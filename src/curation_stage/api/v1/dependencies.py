"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from curation_stage.core.security import decode_subject
from curation_stage.db.session import get_db
from curation_stage.models import User
from curation_stage.services.assets import AssetStore
from curation_stage.services.permissions import Caller

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_caller(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> Caller:
    """Resolve the bearer token into the calling account and its role.

    Raises:
        HTTPException: If the token is invalid or the account does not exist.
    """
    user_id = decode_subject(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return Caller(user_id=user.id, role=user.role)


def get_asset_store(request: Request) -> AssetStore:
    """Return the asset store created at startup."""
    store: AssetStore | None = getattr(request.app.state, "asset_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Asset storage is not available",
        )
    return store


# Type alias for current caller dependency
CurrentCallerDep = Annotated[Caller, Depends(get_current_caller)]
AssetStoreDep = Annotated[AssetStore, Depends(get_asset_store)]
