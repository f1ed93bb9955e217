from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt, ExpiredSignatureError
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional
from erp_portal.constants.roles import CROSS_TENANT_ROLES, AdminRole
from erp_portal.database import get_db
from erp_portal.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError, TokenExpiredError
from erp_portal.models.platform_admin import PlatformAdmin
from .constants import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
import logging

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Portal admin bearer tokens are issued by POST /api/tenant/login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/tenant/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (admin email) in token data.")

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Portal token expired")
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning(f"Portal token decoding failed: {type(e).__name__}")
        raise InvalidTokenError()

    if payload.get("sub") is None:
        logger.warning("Portal token is missing 'sub' claim")
        raise InvalidTokenError("Token does not contain 'sub' field.")
    return payload


async def get_current_admin(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> PlatformAdmin:
    """Resolve the PlatformAdmin behind the request's bearer token."""
    if not token:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(token)
    result = await db.execute(select(PlatformAdmin).where(PlatformAdmin.email == payload["sub"]))
    admin = result.scalars().first()
    if admin is None:
        logger.warning("Portal token refers to an unknown admin")
        raise AuthenticationError("Admin account no longer exists")
    return admin


def ensure_tenant_access(admin: PlatformAdmin, tenant_id: int) -> None:
    """Tenant admins manage only their own tenant; platform roles manage any."""
    if admin.tenant_id == tenant_id:
        return
    if not is_cross_tenant(admin):
        logger.warning(f"Admin {admin.id} denied access to tenant {tenant_id}")
        raise AuthorizationError()


def is_cross_tenant(admin: PlatformAdmin) -> bool:
    try:
        return AdminRole(admin.role) in CROSS_TENANT_ROLES
    except ValueError:
        return False


async def require_platform_admin(admin: PlatformAdmin = Depends(get_current_admin)) -> PlatformAdmin:
    """Dependency for routes that span tenants."""
    if not is_cross_tenant(admin):
        logger.warning(f"Admin {admin.id} denied platform-wide access")
        raise AuthorizationError()
    return admin
