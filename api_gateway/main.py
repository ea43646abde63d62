"""
FastAPI application.

Wires CORS and routers, and runs the server with uvicorn.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import settings
from shared.logging import get_logger
from api_gateway.routes import concat, health

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Build the application."""
    app = FastAPI(title="FFmpeg Video Concat API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(concat.router, tags=["concat"])
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on HOST:PORT."""
    logger.info(
        f"FFmpeg API running on port {settings.port}",
        extra={"host": settings.host, "port": settings.port, "environment": settings.environment}
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
