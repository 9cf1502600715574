from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from finsensei.config import settings
from finsensei.database import init_db, get_db
from finsensei.chat_api import chat_router
from finsensei.finance_api import finance_router, learning_router
from finsensei.proxy_api import proxy_router
from finsensei.services.accounts import check_connection
from finsensei.services.coach import FinancialCoach
from finsensei.services.proxy import UpstreamProxy
from finsensei.utils import setup_logging, get_logger, RateLimiter

setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    init_db()
    if app.state.coach.client is None:
        logger.warning("AI_API_KEY not set, the financial coach will answer with errors")

    yield

    # Shutdown
    logger.info("Shutting down application")


def create_app(config=settings) -> FastAPI:
    app = FastAPI(
        title=config.APP_NAME,
        description=config.APP_DESCRIPTION,
        version=config.APP_VERSION,
        lifespan=lifespan
    )

    app.state.coach = FinancialCoach.from_settings(config)
    app.state.proxy = UpstreamProxy(config.UPSTREAM_API_URL, timeout=config.UPSTREAM_TIMEOUT_SECONDS)
    app.state.chat_rate_limiter = RateLimiter(
        max_requests=config.CHAT_RATE_LIMIT_PER_MINUTE,
        window_seconds=60
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers; the catch-all proxy goes last
    app.include_router(chat_router)
    app.include_router(finance_router)
    app.include_router(learning_router)
    app.include_router(proxy_router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "app": config.APP_NAME,
            "version": config.APP_VERSION,
            "status": "running",
            "features": {
                "coach": app.state.coach.client is not None,
                "proxy": config.UPSTREAM_API_URL,
            }
        }

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        """Health check endpoint"""
        connection = check_connection(db)
        return {
            "status": "healthy" if connection["success"] else "degraded",
            "database": connection,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Internal server error: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


app = create_app()


def run():
    logger.info("Starting FastAPI server...")
    uvicorn.run("finsensei.main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)


if __name__ == "__main__":
    run()
