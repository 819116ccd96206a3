"""
Authentication API endpoints.

Handles user registration, login, and the request dependencies shared by
the other routers.
"""
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.schemas.user import User as UserSchema, UserCreate, UserLogin, UserUpdate, Token
from app.services.auth import (
    create_user,
    update_profile,
    authenticate_user,
    create_access_token,
    get_current_user_from_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from app.services.feature_flags import FeatureFlags, load_feature_flags
from app.models import User

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


# ============== Dependencies ==============

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Get the current authenticated user (optional)."""
    if credentials is None:
        return None

    return get_current_user_from_token(db, credentials.credentials)


async def require_auth(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Require authentication - raises 401 if not authenticated."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = get_current_user_from_token(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled"
        )

    return user


async def require_admin(user: User = Depends(require_auth)) -> User:
    """Require an admin user - raises 403 otherwise."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


def get_flags(db: Session = Depends(get_db)) -> FeatureFlags:
    """Feature flag snapshot for the current request."""
    return load_feature_flags(db)


# ============== Endpoints ==============

@router.post("/register", response_model=UserSchema)
def register(data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user account.

    - **email**: Valid email address
    - **password**: Password (min 6 characters)
    - **display_name**: Optional display name
    - **user_type**: 'person' or 'company'
    """
    if len(data.password) < 6:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 6 characters"
        )

    return create_user(db, data.email, data.password, data.display_name, data.user_type)


@router.post("/login", response_model=Token)
def login(data: UserLogin, db: Session = Depends(get_db)):
    """Login with email and password and receive a bearer token."""
    user = authenticate_user(db, data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled"
        )

    access_token = create_access_token(
        data={"sub": str(user.id)},  # JWT sub must be a string
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return Token(access_token=access_token)


@router.get("/me", response_model=UserSchema)
def get_me(user: User = Depends(require_auth)):
    return user


@router.put("/me", response_model=UserSchema)
def update_me(
    data: UserUpdate,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Change display name or switch between a personal and a company account."""
    return update_profile(db, user, **data.model_dump(exclude_unset=True))
