"""
festboard/main.py
FastAPI application entry point for the festival results board.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import configure_mappers

from festboard import __version__
from festboard.config.settings import settings
from festboard.database import init_db, close_db
from festboard.middleware.error_handler import setup_error_handlers
from festboard.realtime.fanout_bus import get_fanout_bus
from festboard.routes import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting results board...")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down results board...")
    # End every open stream so the server can drain connections
    get_fanout_bus().close()
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


app = FastAPI(
    title="Festival Results Board API",
    description="Live results, standings and display stream for the arts festival",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan
)

origins = [
    "http://localhost:3000",
    "http://localhost:5500",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5500",
    "http://127.0.0.1:8000",
]
origins.extend(settings.ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

setup_error_handlers(app, debug=settings.is_development)

app.include_router(router)


@app.get("/", tags=["Root"])
async def root():
    return {"name": "festboard", "version": __version__, "docs": "/docs"}


configure_mappers()


if __name__ == "__main__":
    import uvicorn

    reload = settings.is_development

    logger.info(f"Starting server on {settings.HOST}:{settings.PORT}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Auto-reload: {reload}")

    uvicorn.run(
        "festboard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=reload,
        log_level="info"
    )
