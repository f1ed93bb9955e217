"""Normalised ERP payload shapes."""

from typing import Any, Literal, Union

from pydantic import BaseModel, Field


class ListPayload(BaseModel):
    kind: Literal["list"] = "list"
    items: list[Any]


class SinglePayload(BaseModel):
    kind: Literal["single"] = "single"
    item: Any


class EmptyPayload(BaseModel):
    kind: Literal["empty"] = "empty"


ErpPayload = Union[ListPayload, SinglePayload, EmptyPayload]


class ProxyEnvelope(BaseModel):
    """Body of the tenant-scoped proxy: the normalised payload plus its origin."""

    tenant_key: str
    environment_id: str
    payload: ErpPayload = Field(discriminator="kind")
