from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from podhub.core.config import settings
from podhub.core.security import verify_access_token
from podhub.modules.user_management.models.user import User
from podhub.modules.user_management.services.user import get_user

# Tokens are issued by the auth service; this only reads the bearer header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_db(request: Request) -> Generator:
    """
    Dependency for getting DB session from the factory the app was built with
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

def get_dispatcher(request: Request):
    return request.app.state.dispatcher

def get_realtime(request: Request):
    return request.app.state.realtime

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    """
    Dependency for getting current authenticated user
    """
    user_id = verify_access_token(token)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = get_user(db, user_id=user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    return user

def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency for platform administrators
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )

    return current_user
