"""
DSXpert Backend - FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dsxpert.log import get_logger
from dsxpert.routers import config, optimize, review
from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.review_session import ReviewSessionManager

logger = get_logger("dsxpert")


def create_app(config_manager: ConfigManager | None = None) -> FastAPI:
    """Build the application; tests pass their own ConfigManager"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: one config and one review registry per process
        logger.info("Starting DSXpert Backend...")
        app.state.config_manager = config_manager or ConfigManager()
        app.state.review_manager = ReviewSessionManager(
            ttl=app.state.config_manager.get("reviewOutcomeTimeoutSeconds", 300),
        )
        logger.info(f"Config loaded from {app.state.config_manager.config_file}")

        yield

        # Shutdown: pending reviews are rejected, never applied
        logger.info("Shutting down DSXpert Backend...")
        app.state.review_manager.close_all()

    app = FastAPI(
        title="DSXpert Backend",
        description="AI-assisted data-structure optimization with diff review for editors",
        version="1.0.5",
        lifespan=lifespan,
    )

    # CORS middleware for the editor add-on and the review page
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Editor add-on runs locally
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(optimize.router, prefix="/api/optimize", tags=["optimize"])
    app.include_router(review.router, prefix="/api/review", tags=["review"])
    app.include_router(config.router, prefix="/api/config", tags=["config"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "dsxpert-backend"}

    return app


app = create_app()


def run():
    import uvicorn

    server = ConfigManager().get("server", {})
    uvicorn.run(app, host=server.get("host", "127.0.0.1"), port=server.get("port", 8000))


if __name__ == "__main__":
    run()
