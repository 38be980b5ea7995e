from datetime import datetime, timedelta, timezone
import logging
import os
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from .db import get_session
from .errors import ValidationError
from .models import Role, User

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("APP_SECRET_KEY", "dev-secret-change-this")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def authenticate_user(session: Session, email: str, password: str) -> User:
    """Return the user for valid credentials, else raise HTTP 401."""
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated. Contact admin.")
    return user


def change_password(session: Session, user: User, current_password: str, new_password: str) -> None:
    if not current_password or not new_password:
        raise ValidationError("Both passwords are required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    session.add(user)
    session.commit()
    logger.info("Password changed for user %s", user.id)


def get_current_user(
    token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            raise credentials_exception
        user_id = int(sub)
    except (JWTError, ValueError):
        raise credentials_exception
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found.")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated. Contact admin.")
    return user


def authorize(principal: Optional[User], required_role: str) -> bool:
    """Allow only a principal whose role is exactly ``required_role``."""
    return principal is not None and principal.role == required_role


def require_role(role: str):
    denied = "Admins only." if role == Role.admin.value else "Tenants only."

    def _role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not authorize(current_user, role):
            raise HTTPException(status_code=403, detail=denied)
        return current_user

    return _role_checker


def ensure_default_admin(session: Session) -> Optional[User]:
    """Seed an admin from the environment when none exists yet."""
    password = os.getenv("ADMIN_PASSWORD")
    if not password:
        return None
    existing = session.exec(select(User).where(User.role == Role.admin.value)).first()
    if existing:
        return None
    admin = User(
        name=os.getenv("ADMIN_NAME", "System Admin"),
        email=os.getenv("ADMIN_EMAIL", "admin@rentms.com").lower(),
        phone=os.getenv("ADMIN_PHONE", "9999999999"),
        password_hash=get_password_hash(password),
        role=Role.admin.value,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Default admin created: %s", admin.email)
    return admin
