"""Client schemas."""

from __future__ import annotations

import uuid
from pydantic import BaseModel


class ClientCreate(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    portal_enabled: bool = True
    preferred_invoice_template_key: str | None = None


class ClientResponse(ClientCreate):
    id: uuid.UUID
    business_id: uuid.UUID

    model_config = {"from_attributes": True}
