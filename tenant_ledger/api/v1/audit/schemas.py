"""Audit log schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tenant_ledger.core.enums import ActorRole, AuditOutcome


class AuditEntryCreate(BaseModel):
    action_type: str = Field(..., max_length=100)
    entity_type: str = Field(..., max_length=50)
    entity_id: Optional[UUID] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class AuditRecordResponse(BaseModel):
    status: AuditOutcome


class AuditQuery(BaseModel):
    role: Optional[ActorRole] = None
    action_type: Optional[str] = None
    entity_type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: Optional[int] = Field(None, ge=1)
    # Admin only: restrict to one tenant. Other roles are always scoped to their own tenant.
    tenant_id: Optional[UUID] = None


class AuditEntryResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    actor_id: Optional[UUID] = None
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
    action_type: str
    entity_type: str
    entity_id: Optional[UUID] = None
    details: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True
