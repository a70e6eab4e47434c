from uuid import UUID

from pydantic import BaseModel, ConfigDict

from tenant_ledger.core.enums import ActorRole


class TenantContext(BaseModel):
    """Who is acting and inside which tenant. Threaded explicitly through every service call."""

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    actor_id: UUID
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
