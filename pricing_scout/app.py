"""FastAPI application."""

import argparse
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricing_scout.configs import settings
from pricing_scout.controllers.pricing_controllers import pricing_router
from pricing_scout.logger_config import get_logger
from pricing_scout.services.price_search.service import (
    PricingEngine,
    init_pricing_engine,
)

logger = get_logger(__name__)
get_logger("price_search")


def create_app(engine: Optional[PricingEngine] = None) -> FastAPI:
    """Build the API; a fresh engine is created on startup unless one is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.pricing_engine = engine or init_pricing_engine(settings)
        logger.info(
            "Pricing engine ready with providers: %s",
            ", ".join(app.state.pricing_engine.list_providers()) or "none",
        )
        try:
            yield
        finally:
            await app.state.pricing_engine.aclose()
            logger.info("Pricing engine closed.")

    app = FastAPI(
        title="Pricing Scout API",
        root_path=settings.ROOT_PATH_BACKEND,
        description="Approximate construction material prices by location",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(pricing_router)

    @app.get("/", response_description="Api healthcheck")
    async def index() -> Dict[str, str]:
        """Define a route for handling HTTP GET requests to the root URL ("/")."""
        return {"status": "ok"}

    return app


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--docker", action="store_true", help="Running with docker")
    parser.add_argument("--host", required=True, help="Application host.")
    parser.add_argument("--port", required=True, help="Application port.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development purposes.",
    )
    args = parser.parse_args()
    if not args.docker:
        from dotenv import load_dotenv

        load_dotenv(".env")

    import uvicorn

    logger.info("Starting FastAPI application...")
    uvicorn.run(
        "pricing_scout.app:create_app",
        factory=True,
        host=args.host,
        port=int(args.port),
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
