from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel

from app.shopbook.core.config import settings

# Tokens are issued by the external auth service; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

SUPER_ADMIN_ROLE = "super_admin"
STAFF_ROLE = "staff"


class Caller(BaseModel):
    sub: str
    roles: list[str] = []
    permissions: list[str] = []
    staff_shop_id: str | None = None

    @property
    def id(self) -> str:
        return self.sub

    @property
    def is_super_admin(self) -> bool:
        return SUPER_ADMIN_ROLE in self.roles


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_caller_token(
    user_id: str,
    *,
    roles: list[str] | None = None,
    permissions: list[str] | None = None,
    staff_shop_id: str | None = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    return create_access_token(
        {
            "sub": str(user_id),
            "roles": list(roles or []),
            "permissions": list(permissions or []),
            "staff_shop_id": str(staff_shop_id) if staff_shop_id else None,
        },
        expires_delta=expires_delta,
    )
