import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from elosya.core.config import settings, validate_config
from elosya.core.database import check_connection, create_all_tables
from elosya.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from elosya.core.logging import configure_logging
from elosya.core.middleware.request_id import RequestIdMiddleware
from elosya.core.validation import validate_env
from elosya.api import earnings, engagement, health, users, videos

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("elosya")
    logger.info("Starting Elosya backend...")
    app.state.startup_time = time.time()
    if check_connection():
        create_all_tables()
    try:
        yield
    finally:
        logging.getLogger("elosya").info("Stopping Elosya backend...")


app = FastAPI(title="Elosya - Monetization Backend", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.root_router)
app.include_router(users.router)
app.include_router(videos.router)
app.include_router(engagement.router)
app.include_router(earnings.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("elosya.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=settings.ENV == "development")
