import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from price_review.core.settings import get_settings
from price_review.infrastructure import (
    configure_ai_pricing_client,
    configure_webhook_client,
    get_ai_pricing_client,
    get_webhook_client,
)
from price_review.routes import dataset, jobs, project, records
from price_review.workers.orchestrator import shutdown_job_orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_job_orchestrator()
    await get_webhook_client().aclose()
    await get_ai_pricing_client().aclose()
    configure_webhook_client(None)
    configure_ai_pricing_client(None)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Price Review API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dataset.router, prefix="/api")
    app.include_router(records.router, prefix="/api")
    app.include_router(jobs.router, prefix="/api")
    app.include_router(project.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Price Review API",
                "docs": "/docs",
                "health": "/api/dataset",
            }
        )

    return app


app = create_app()
