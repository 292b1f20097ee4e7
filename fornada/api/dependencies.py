"""FastAPI dependencies for authentication and database."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fornada.database import get_db
from fornada.models.establishment import Establishment
from fornada.models.user import User
from fornada.services.auth import decode_access_token
from fornada.services.reservation_service import ReservationService
from fornada.services.subscription_directory import SubscriptionDirectory

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(db: Session, token: str) -> User:
    payload = decode_access_token(token)
    if payload is None:
        raise _credentials_exception()

    user_id = payload.get("sub")
    if user_id is None:
        raise _credentials_exception()

    user = db.get(User, int(user_id))
    if user is None:
        raise _credentials_exception("User not found")

    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    return _user_from_token(db, credentials.credentials)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_security)],
    db: Annotated[Session, Depends(get_db)],
) -> User | None:
    """Get the current user when a bearer token is sent, None for anonymous requests."""
    if credentials is None:
        return None
    return _user_from_token(db, credentials.credentials)


def get_establishment_or_404(db: Session, establishment_id: int) -> Establishment:
    """Get an establishment or raise 404."""
    establishment = db.get(Establishment, establishment_id)
    if establishment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Establishment not found")
    return establishment


def get_owned_establishment(db: Session, establishment_id: int, user: User) -> Establishment:
    """Get an establishment the user owns, 404 if missing and 403 if owned by someone else."""
    establishment = get_establishment_or_404(db, establishment_id)
    if establishment.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not own this establishment",
        )
    return establishment


def get_subscription_directory(
    db: Annotated[Session, Depends(get_db)],
) -> SubscriptionDirectory:
    """Get subscription directory bound to the request session."""
    return SubscriptionDirectory(db)


def get_reservation_service(
    db: Annotated[Session, Depends(get_db)],
) -> ReservationService:
    """Get reservation service with dependencies."""
    return ReservationService(db)
