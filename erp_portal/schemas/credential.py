"""
ERP credential schemas.

The ERP issues OAuth-style bearer tokens from `/api/connect/token`; the
portal keeps them client-side as `StoredCredential`.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenGrant(BaseModel):
    """Body accepted by the token exchange routes: the ERP host plus grant fields."""

    model_config = ConfigDict(extra="allow")

    endpoint: Optional[str] = None

    def grant_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"endpoint"}, exclude_none=True)


class PasswordGrant(BaseModel):
    grant_type: Literal["password"] = "password"
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    servicealias: Optional[str] = None


class RefreshGrant(BaseModel):
    grant_type: Literal["refresh_token"] = "refresh_token"
    refresh_token: str = Field(..., min_length=1)


class ErpLogin(BaseModel):
    """Tenant-scoped login: the ERP host comes from the selected environment."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    environment_id: Optional[str] = None
    servicealias: Optional[str] = None


class ErpRefresh(BaseModel):
    refresh_token: str = Field(..., min_length=1)
    environment_id: Optional[str] = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: Optional[str] = None


class StoredCredential(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: datetime
    tenant_key: Optional[str] = None
    environment_id: Optional[str] = None
    endpoint: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_token_response(
        cls,
        token: TokenResponse,
        *,
        endpoint: str | None = None,
        tenant_key: str | None = None,
        environment_id: str | None = None,
        username: str | None = None,
        now: datetime | None = None,
    ) -> "StoredCredential":
        issued_at = now or datetime.now(timezone.utc)
        return cls(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            token_type=token.token_type or "Bearer",
            expires_at=issued_at + timedelta(seconds=token.expires_in),
            tenant_key=tenant_key,
            environment_id=environment_id,
            endpoint=endpoint,
            username=username,
        )


class TimeRemaining(BaseModel):
    total_seconds: int
    hours: int
    minutes: int
    seconds: int
    label: str
    expiring_soon: bool
    expired: bool
