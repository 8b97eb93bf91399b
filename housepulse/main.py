from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from .routers.suburbs import router as suburbs_router
from .routers.gazetteer import router as gazetteer_router

# Core modules
from .core.config import settings
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .services.suburb_service import SuburbService, build_service

def create_app(service: SuburbService | None = None) -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    Pass `service` to substitute collaborators (stores, caches, clients).
    """
    configure_logging()

    app = FastAPI(
        title="HousePulse Suburb Research API",
        version="2.0.0",
        description="Suburb price/rent records with yield, distance and census enrichment.",
    )
    # One service per process: gazetteer and demographics caches live here
    app.state.suburb_service = service or build_service()

    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag","X-Request-Id","Content-Disposition"],
    )

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)

    # Meta routes
    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(suburbs_router, prefix="/v1", tags=["suburbs"])
    app.include_router(gazetteer_router, prefix="/v1", tags=["reference"])

    return app

app = create_app()
