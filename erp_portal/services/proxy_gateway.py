"""
ERP Proxy Gateway

Forwards one call to a tenant's ERP host and hands back a uniform result.

- Targets are always addressed over plain http:// (the ERP hosts are
  reached on internal addresses), whatever scheme the caller supplied.
- Token exchange URLs keep an explicit scheme and default to http://.
- Upstream status codes and bodies are relayed unchanged; only transport
  failures become a ServiceError with a generic message.
- No retries. The only timeout is `settings.proxy_timeout_seconds`.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import httpx

from erp_portal.config import settings
from erp_portal.constants.auth import ERP_TOKEN_PATH
from erp_portal.exceptions import ServiceError, ValidationError
from erp_portal.schemas.erp import EmptyPayload, ErpPayload, ListPayload, SinglePayload

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, SOAPAction, X-Tenant",
}

# Wrapper keys under which the ERP returns collections
LIST_WRAPPER_KEYS = ("data", "value", "items")


@dataclass
class GatewayResponse:
    status_code: int
    body: Any
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _strip_scheme(endpoint: str) -> str:
    endpoint = endpoint.strip()
    for prefix in ("http://", "https://"):
        if endpoint.lower().startswith(prefix):
            return endpoint[len(prefix):]
    return endpoint


def build_target_url(endpoint: str | None, path: str | None) -> str:
    """
    Build the outbound URL for a proxied call.

    >>> build_target_url("https://erp.example.com:8051", "/api/framework/v1/users")
    'http://erp.example.com:8051/api/framework/v1/users'
    """
    if not endpoint or not path:
        raise ValidationError("endpoint and path are required", field="endpoint" if not endpoint else "path")
    host = _strip_scheme(endpoint).rstrip("/")
    if not path.startswith("/"):
        path = "/" + path
    return f"http://{host}{path}"


def build_token_url(endpoint: str | None, token_endpoint: str | None = None) -> str:
    """Token exchange URL; an environment-level override replaces the default path."""
    if not endpoint:
        raise ValidationError("endpoint is required", field="endpoint")
    base = endpoint.strip().rstrip("/")
    if not base.lower().startswith(("http://", "https://")):
        base = f"http://{base}"
    if token_endpoint:
        if token_endpoint.lower().startswith(("http://", "https://")):
            return token_endpoint
        return base + ("" if token_endpoint.startswith("/") else "/") + token_endpoint
    return base + ERP_TOKEN_PATH


def _reject_constant(name: str) -> Any:
    # NaN and Infinity decode as floats that no JSON response can carry
    raise ValueError(f"Non-standard JSON constant {name}")


def normalize_body(response: httpx.Response) -> Any:
    """Decode an upstream body: JSON when declared, else try JSON, else wrap the text."""
    if not response.content:
        return {}
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json(parse_constant=_reject_constant)
        except ValueError:
            logger.debug("Upstream declared JSON but sent an undecodable body")
    text = response.text
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return {"message": text}


def normalize_shape(body: Any) -> ErpPayload:
    """
    Classify an ERP body as a list, a single record or nothing.

    The ERP returns collections either as a bare array or wrapped in one of
    `data`, `value` or `items`; anything else that is an object is a single
    record.
    """
    if body is None or body == {} or body == [] or body == "":
        return EmptyPayload()
    if isinstance(body, list):
        return ListPayload(items=body)
    if isinstance(body, dict):
        for key in LIST_WRAPPER_KEYS:
            if isinstance(body.get(key), list):
                items = body[key]
                return ListPayload(items=items) if items else EmptyPayload()
        return SinglePayload(item=body)
    return SinglePayload(item=body)


class ProxyGateway:
    """
    Outbound HTTP client for the ERP.

    A transport can be injected (httpx.MockTransport in tests); otherwise a
    new AsyncClient is opened per call.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None, timeout: float | None = None):
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.proxy_timeout_seconds

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"transport": self.transport}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return httpx.AsyncClient(**kwargs)

    async def forward(
        self,
        method: str,
        url: str,
        token: str | None = None,
        body: Any = None,
        content: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> GatewayResponse:
        """
        Issue exactly one outbound request.

        `body` is sent as JSON, `content` verbatim (SOAP envelopes). Non-2xx
        answers are returned, not raised.
        """
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        target = urlsplit(url)
        logger.info("Proxying %s %s%s", method.upper(), target.netloc, target.path)

        try:
            async with self._client() as client:
                response = await client.request(
                    method.upper(),
                    url,
                    headers=request_headers,
                    json=body if content is None else None,
                    content=content,
                )
        except httpx.TimeoutException as e:
            logger.warning("Upstream %s timed out", target.netloc)
            raise ServiceError("Upstream ERP did not answer in time", service="erp") from e
        except httpx.HTTPError as e:
            logger.warning("Upstream %s unreachable: %s", target.netloc, type(e).__name__)
            raise ServiceError("Upstream ERP is unreachable", service="erp") from e

        if response.is_error:
            logger.info("Upstream %s answered %d", target.netloc, response.status_code)

        return GatewayResponse(
            status_code=response.status_code,
            body=normalize_body(response),
            text=response.text,
            headers=dict(response.headers),
        )

    async def get(self, endpoint: str | None, path: str | None, token: str | None = None) -> GatewayResponse:
        return await self.forward("GET", build_target_url(endpoint, path), token=token)

    async def post_grant(self, url: str, fields: dict[str, Any]) -> GatewayResponse:
        """Send a token grant as a JSON object to the token exchange URL."""
        return await self.forward("POST", url, body=fields)

    async def post_soap(
        self,
        endpoint: str | None,
        path: str | None,
        envelope: str | bytes,
        token: str | None = None,
        soap_action: str | None = None,
    ) -> GatewayResponse:
        headers = {"Content-Type": "text/xml; charset=utf-8"}
        if soap_action:
            headers["SOAPAction"] = soap_action
        return await self.forward(
            "POST", build_target_url(endpoint, path), token=token, content=envelope, headers=headers
        )


def get_proxy_gateway() -> ProxyGateway:
    """FastAPI dependency; overridden in tests to inject a mock transport."""
    return ProxyGateway()
