from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI

from registry.config import engine, settings
from registry.middleware import RequestIdMiddleware
from registry.models import Base
from registry.routes import anchors, identities, stats
from registry.schemas import HealthResponse


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="LATTICE Trust Anchor Registry",
        version="0.1.0",
        description=(
            "Publishes one Merkle root per identity committing to its off-chain trust edges, "
            "and verifies inclusion proofs for individual edges against the published root."
        ),
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "Health", "description": "Service health check"},
            {"name": "Identities", "description": "Identity registration and API keys"},
            {"name": "Anchors", "description": "Create anchors, publish roots, verify edges"},
            {"name": "Stats", "description": "Registry totals"},
        ],
    )

    app.add_middleware(RequestIdMiddleware)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health() -> HealthResponse:
        return HealthResponse()

    api_router = APIRouter()
    api_router.include_router(identities.router)
    api_router.include_router(anchors.router)
    api_router.include_router(stats.router)

    app.include_router(api_router, prefix="/v1")
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "registry.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level,
    )
