"""
ERP Credential Lifecycle

Issues, tracks, refreshes and invalidates the short-lived bearer tokens the
ERP hands out from its token endpoint.

One CredentialManager serves one browsing context (one tenant and one
environment). Refreshes are single-flight per manager: while a refresh is in
progress every other caller awaits the same result instead of sending a
second refresh grant. A successful refresh is pushed to every subscriber.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from erp_portal.exceptions import CredentialExpiredError, ServiceError, UpstreamError
from erp_portal.schemas.credential import (
    PasswordGrant,
    RefreshGrant,
    StoredCredential,
    TimeRemaining,
    TokenResponse,
)
from erp_portal.services.proxy_gateway import ProxyGateway, build_token_url

logger = logging.getLogger(__name__)

EXPIRING_SOON_THRESHOLD = timedelta(minutes=10)
EXPIRED_LABEL = "Expirado"

CredentialListener = Callable[[StoredCredential], Any]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def time_remaining(credential: StoredCredential, now: Optional[datetime] = None) -> TimeRemaining:
    """
    Time left before a credential expires.

    Labels read "1h 5m", "9m 30s" or "42s", and "Expirado" once the expiry
    instant has been reached.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    left = _as_utc(credential.expires_at) - now

    if left <= timedelta(0):
        return TimeRemaining(
            total_seconds=0, hours=0, minutes=0, seconds=0,
            label=EXPIRED_LABEL, expiring_soon=False, expired=True,
        )

    # Whole seconds for display only; a fraction of a second left is still valid
    total = int(left.total_seconds())

    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        label = f"{hours}h {minutes}m"
    elif minutes:
        label = f"{minutes}m {seconds}s"
    else:
        label = f"{seconds}s"

    return TimeRemaining(
        total_seconds=total,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        label=label,
        expiring_soon=total < EXPIRING_SOON_THRESHOLD.total_seconds(),
        expired=False,
    )


class CredentialStore:
    """Credentials held for the lifetime of a client, keyed by (tenant_key, environment_id)."""

    def __init__(self):
        self._credentials: dict[tuple[Optional[str], Optional[str]], StoredCredential] = {}

    def save(self, credential: StoredCredential) -> None:
        self._credentials[(credential.tenant_key, credential.environment_id)] = credential

    def get(self, tenant_key: Optional[str], environment_id: Optional[str]) -> Optional[StoredCredential]:
        return self._credentials.get((tenant_key, environment_id))

    def delete(self, tenant_key: Optional[str], environment_id: Optional[str]) -> None:
        self._credentials.pop((tenant_key, environment_id), None)

    def __len__(self) -> int:
        return len(self._credentials)


class CredentialManager:
    """
    Credential lifecycle for one tenant environment.

    Args:
        gateway: outbound client used for token grants
        tenant_key / environment_id: scope of the stored credential
        endpoint: ERP host of the environment
        token_endpoint: optional override of the token exchange path
        store: shared CredentialStore (a private one by default)
        clock: returns "now"; injectable for expiry checks
    """

    def __init__(
        self,
        gateway: ProxyGateway,
        tenant_key: Optional[str] = None,
        environment_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        token_endpoint: Optional[str] = None,
        store: Optional[CredentialStore] = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.gateway = gateway
        self.tenant_key = tenant_key
        self.environment_id = environment_id
        self.endpoint = endpoint
        self.token_endpoint = token_endpoint
        self._store = store if store is not None else CredentialStore()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._listeners: list[CredentialListener] = []
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def _expired(self, detail: str = "ERP credential expired, authenticate again") -> CredentialExpiredError:
        return CredentialExpiredError(detail, tenant_key=self.tenant_key)

    async def issue(
        self,
        username: str,
        password: str,
        endpoint: Optional[str] = None,
        **extra_fields: Any,
    ) -> StoredCredential:
        """
        Exchange username/password for a credential and store it.

        Raises:
            UpstreamError: the ERP refused the grant; its status and body are kept
        """
        endpoint = endpoint or self.endpoint
        grant = PasswordGrant(username=username, password=password, **extra_fields)
        response = await self.gateway.post_grant(
            build_token_url(endpoint, self.token_endpoint), grant.model_dump(exclude_none=True)
        )
        if not response.ok:
            logger.info("ERP password grant refused: status=%d tenant=%s", response.status_code, self.tenant_key)
            raise UpstreamError(response.status_code, response.body)

        token = self._parse_token(response.body)
        credential = StoredCredential.from_token_response(
            token,
            endpoint=endpoint,
            tenant_key=self.tenant_key,
            environment_id=self.environment_id,
            username=username,
            now=self._clock(),
        )
        self.store(credential)
        logger.info("ERP credential issued: tenant=%s env=%s", self.tenant_key, self.environment_id)
        return credential

    def _parse_token(self, body: Any) -> TokenResponse:
        try:
            return TokenResponse.model_validate(body)
        except PydanticValidationError as e:
            logger.warning("ERP token response is missing required fields")
            raise ServiceError("Malformed token response from ERP", service="erp") from e

    def store(self, credential: StoredCredential) -> None:
        self._store.save(credential)

    def read(self) -> Optional[StoredCredential]:
        return self._store.get(self.tenant_key, self.environment_id)

    def clear(self) -> None:
        self._store.delete(self.tenant_key, self.environment_id)
        logger.info("ERP credential cleared: tenant=%s env=%s", self.tenant_key, self.environment_id)

    def time_remaining(self) -> Optional[TimeRemaining]:
        credential = self.read()
        if credential is None:
            return None
        return time_remaining(credential, self._clock())

    def subscribe(self, listener: CredentialListener) -> Callable[[], None]:
        """Register a listener for refreshed credentials; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _broadcast(self, credential: StoredCredential) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(credential)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Credential listener %r failed", listener)

    async def refresh(self) -> StoredCredential:
        """
        Exchange the refresh token for a new credential.

        Concurrent callers share the refresh already in flight. On failure
        the stored credential is cleared and CredentialExpiredError is raised.
        """
        if self.is_refreshing:
            logger.debug("Refresh already in flight, joining it")
        else:
            self._refresh_task = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> StoredCredential:
        current = self.read()
        if current is None or not current.refresh_token:
            self.clear()
            raise self._expired("No refresh token available, authenticate again")

        endpoint = current.endpoint or self.endpoint
        grant = RefreshGrant(refresh_token=current.refresh_token)
        try:
            response = await self.gateway.post_grant(build_token_url(endpoint, self.token_endpoint), grant.model_dump())
        except ServiceError as e:
            self.clear()
            raise self._expired() from e

        if not response.ok:
            logger.info("ERP refresh grant refused: status=%d tenant=%s", response.status_code, self.tenant_key)
            self.clear()
            raise self._expired()

        try:
            token = self._parse_token(response.body)
        except ServiceError as e:
            self.clear()
            raise self._expired() from e

        refreshed = StoredCredential.from_token_response(
            token,
            endpoint=endpoint,
            tenant_key=current.tenant_key,
            environment_id=current.environment_id,
            username=current.username,
            now=self._clock(),
        )
        if refreshed.refresh_token is None:
            refreshed = refreshed.model_copy(update={"refresh_token": current.refresh_token})

        self.store(refreshed)
        logger.info("ERP credential refreshed: tenant=%s env=%s", self.tenant_key, self.environment_id)
        await self._broadcast(refreshed)
        return refreshed

    async def ensure_valid(self) -> StoredCredential:
        """
        Return a credential that has not expired.

        An expired credential is refreshed when it carries a refresh token;
        otherwise it is cleared and CredentialExpiredError is raised.
        """
        credential = self.read()
        if credential is None:
            raise self._expired("No ERP credential, authenticate first")

        if time_remaining(credential, self._clock()).expired:
            if credential.refresh_token:
                return await self.refresh()
            self.clear()
            raise self._expired()
        return credential
