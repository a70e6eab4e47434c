from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenant_ledger.api.v1.audit.router import router as audit_router
from tenant_ledger.api.v1.fee_catalog.router import router as fee_catalog_router
from tenant_ledger.api.v1.ledger.router import router as ledger_router
from tenant_ledger.api.v1.reports.router import router as reports_router
from tenant_ledger.core.config import settings
from tenant_ledger.core.log_config import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Tenant Ledger")

    # CORS: allow the school frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(fee_catalog_router)
    app.include_router(ledger_router)
    app.include_router(audit_router)
    app.include_router(reports_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("tenant_ledger.main:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
