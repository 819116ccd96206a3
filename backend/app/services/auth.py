"""
Authentication Service

Handles user registration, login, and JWT token management.
"""
from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import User
from app.config import get_settings

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
SECRET_KEY = settings.jwt_secret_key
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


USER_TYPES = ("person", "company")


def create_user(
    db: Session,
    email: str,
    password: str,
    display_name: Optional[str] = None,
    user_type: str = "person",
) -> User:
    """Create a new user account with an empty TrueKoin wallet."""
    from app.services.trukoins import get_or_create_wallet

    email = email.lower()
    if get_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    if user_type not in USER_TYPES:
        raise HTTPException(status_code=400, detail="Invalid user type")

    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        display_name=display_name or email.split("@")[0],
        user_type=user_type,
    )
    db.add(user)
    db.flush()
    get_or_create_wallet(db, user.id)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: User, display_name: Optional[str] = None, user_type: Optional[str] = None) -> User:
    if user_type is not None:
        if user_type not in USER_TYPES:
            raise HTTPException(status_code=400, detail="Invalid user type")
        user.user_type = user_type
    if display_name:
        user.display_name = display_name.strip()
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def get_current_user_from_token(db: Session, token: str) -> Optional[User]:
    """Get the current user from a JWT token."""
    payload = decode_token(token)
    if payload is None:
        return None

    sub = payload.get("sub")
    if sub is None:
        return None

    # sub is stored as a string in the JWT
    try:
        user_id = int(sub)
    except (ValueError, TypeError):
        return None

    return get_user_by_id(db, user_id)
