from contextlib import asynccontextmanager

from fastapi import FastAPI
from claims_crm.logging_conf import setup_logging
from fastapi.middleware.cors import CORSMiddleware
from claims_crm.config import settings
from claims_crm.db.database import database
from claims_crm.db.schema import init_schema
from claims_crm.errors import register_error_handlers
from claims_crm.middleware import RequestContextMiddleware
from claims_crm.routes.auth import router as auth_router
from claims_crm.routes.claims import router as claims_router
from claims_crm.routes.customers import router as customers_router
from claims_crm.routes.leads import router as leads_router
from claims_crm.routes.policies import router as policies_router
from claims_crm.routes.renewals import router as renewals_router
from claims_crm.routes.surveyors import router as surveyors_router
from claims_crm.routes.users import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_schema()
    yield
    database.close()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Claims CRM API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    app.include_router(claims_router)
    app.include_router(surveyors_router)
    app.include_router(renewals_router)
    app.include_router(leads_router)
    app.include_router(policies_router)
    app.include_router(customers_router)
    app.include_router(users_router)
    app.include_router(auth_router)
    return app

app = create_app()
