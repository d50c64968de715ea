from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt, ExpiredSignatureError
from passlib.context import CryptContext
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from servimatch.database import get_db
from servimatch import models
from .config import settings

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller, passed explicitly into every service call."""
    user_id: int
    role: Optional[models.UserRole]
    phone: Optional[str] = None

    @property
    def is_worker(self) -> bool:
        return self.role == models.UserRole.WORKER


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key_plain, algorithm=ALGORITHM)


def token_for(user: models.User) -> str:
    role_val = user.role.value if user.role is not None else None
    return create_access_token({"sub": str(user.id), "role": role_val, "email": user.email})


# auto_error=False so we can fall back to the cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key_plain, algorithms=[ALGORITHM])


def _auth_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    bearer_token: Optional[str] = Depends(oauth2_scheme),
) -> models.User:
    # 1) Bearer header (OAuth2)
    token = bearer_token

    # 2) Fallback: HttpOnly cookie
    if not token:
        token = request.cookies.get("access_token")

    if not token:
        raise _auth_error("Not authenticated")

    try:
        payload = decode_token(token)
        sub = payload.get("sub")
        if sub is None:
            raise _auth_error("Invalid token payload")
        user_id = int(sub)
    except ExpiredSignatureError:
        raise _auth_error("Token expired")
    except (JWTError, ValueError):
        raise _auth_error("Invalid token")

    user = await db.get(models.User, user_id)
    if not user:
        raise _auth_error("User not found")

    return user


async def get_caller(user: models.User = Depends(get_current_user)) -> CallerContext:
    # Role is read from the row, not the token, so role changes apply immediately
    return CallerContext(user_id=user.id, role=user.role, phone=user.phone)


def require_role(*roles: models.UserRole):
    async def _dependency(caller: CallerContext = Depends(get_caller)) -> CallerContext:
        if caller.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return caller
    return _dependency
