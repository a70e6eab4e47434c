from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth import services
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.exceptions import UnauthenticatedError
from tenant_ledger.db.session import get_db


# Tokens are issued by the external identity provider; this URL is informational for OpenAPI only.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_tenant_context(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """Resolve the authenticated actor and their tenant from the access token."""
    try:
        return await services.resolve(db, token)
    except UnauthenticatedError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
