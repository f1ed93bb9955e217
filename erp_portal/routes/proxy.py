"""
ERP Proxy Routes

GET  /api/proxy?endpoint=&path=&token=        → relay a REST call to the ERP
POST /api/proxy-soap?endpoint=&path=&token=   → relay a SOAP envelope to the ERP
GET  /api/erp/proxy?path=&environment_id=     → tenant-scoped relay using the tenant's own environment

The two raw proxies answer every request with permissive CORS headers,
short-circuit OPTIONS preflights, and keep their failures local so the
headers survive. The tenant-scoped proxy goes through the regular error
handlers.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.database import get_db
from erp_portal.exception_handlers import create_error_response
from erp_portal.exceptions import (
    CredentialExpiredError,
    ErrorCode,
    PortalError,
    UpstreamError,
    ValidationError,
)
from erp_portal.middleware.tenant import require_tenant_key
from erp_portal.schemas.credential import StoredCredential
from erp_portal.schemas.erp import ProxyEnvelope
from erp_portal.services.erp_session import ErpSession, load_active_tenant
from erp_portal.services.proxy_gateway import CORS_HEADERS, ProxyGateway, get_proxy_gateway

router = APIRouter(tags=["ERP Proxy"])
logger = logging.getLogger(__name__)

# Credentials sent without an expiry are trusted until the ERP rejects them
UNKNOWN_EXPIRY = datetime.max.replace(tzinfo=timezone.utc)
EXPIRES_AT_HEADER = "X-Token-Expires-At"


def _bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def _error(request: Request, status_code: int, message: str, error_code: ErrorCode) -> JSONResponse:
    return create_error_response(
        status_code=status_code,
        message=message,
        error_code=error_code,
        path=request.url.path,
        headers=CORS_HEADERS,
    )


def _portal_error(request: Request, exc: PortalError) -> JSONResponse:
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
        path=request.url.path,
        headers=CORS_HEADERS,
    )


def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Proxy failure on {request.url.path}: {type(exc).__name__}", exc_info=True)
    return _error(request, 500, "Internal proxy error", ErrorCode.INTERNAL_ERROR)


def _target(request: Request) -> tuple[Optional[str], Optional[str], Optional[str]]:
    params = request.query_params
    token = params.get("token") or _bearer_token(request)
    return params.get("endpoint"), params.get("path"), token


@router.api_route("/api/proxy", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def rest_proxy(
    request: Request,
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    if request.method != "GET":
        return _error(request, 405, "Method not allowed", ErrorCode.INVALID_OPERATION)

    endpoint, path, token = _target(request)
    if not endpoint or not path:
        return _error(request, 400, "endpoint and path required", ErrorCode.VALIDATION_FAILED)

    try:
        result = await gateway.get(endpoint, path, token=token)
    except PortalError as e:
        return _portal_error(request, e)
    except Exception as e:
        return _unexpected(request, e)

    return JSONResponse(status_code=result.status_code, content=result.body, headers=CORS_HEADERS)


@router.api_route("/api/proxy-soap", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def soap_proxy(
    request: Request,
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    if request.method != "POST":
        return _error(request, 405, "Method not allowed", ErrorCode.INVALID_OPERATION)

    endpoint, path, token = _target(request)
    if not endpoint or not path:
        return _error(request, 400, "endpoint and path required", ErrorCode.VALIDATION_FAILED)

    try:
        envelope = await request.body()
        result = await gateway.post_soap(
            endpoint, path, envelope, token=token, soap_action=request.headers.get("soapaction")
        )
    except PortalError as e:
        return _portal_error(request, e)
    except Exception as e:
        return _unexpected(request, e)

    media_type = result.headers.get("content-type", "text/xml; charset=utf-8")
    return Response(content=result.text, status_code=result.status_code, media_type=media_type, headers=CORS_HEADERS)


def _credential_from_request(request: Request) -> StoredCredential:
    token = _bearer_token(request)
    if token is None:
        raise CredentialExpiredError("No ERP credential, authenticate first")

    expires_at = UNKNOWN_EXPIRY
    raw_expiry = request.headers.get(EXPIRES_AT_HEADER)
    if raw_expiry:
        try:
            expires_at = datetime.fromisoformat(raw_expiry.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError("Invalid credential expiry", field=EXPIRES_AT_HEADER) from e
    return StoredCredential(access_token=token, expires_at=expires_at)


@router.get("/api/erp/proxy", response_model=ProxyEnvelope)
async def tenant_proxy(
    request: Request,
    path: Optional[str] = None,
    environment_id: Optional[str] = None,
    tenant_key: str = Depends(require_tenant_key),
    db: AsyncSession = Depends(get_db),
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> ProxyEnvelope:
    """
    Relay a GET to the resolved tenant's ERP and normalise the answer.

    An expired credential is refused before any outbound call.
    """
    if not path:
        raise ValidationError("path is required", field="path")

    tenant = await load_active_tenant(tenant_key, db)
    session = ErpSession.open(tenant, gateway, environment_id)
    session.attach(_credential_from_request(request))

    response, payload = await session.fetch(path)
    if not response.ok:
        raise UpstreamError(response.status_code, response.body)

    return ProxyEnvelope(tenant_key=tenant.tenant_key, environment_id=session.environment.id, payload=payload)
