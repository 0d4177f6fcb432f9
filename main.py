# main.py
import logging
import sys
from contextlib import asynccontextmanager

import socketio # type: ignore
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler # type: ignore
from apscheduler.triggers.cron import CronTrigger # type: ignore
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.api import api_router
from app.config import CLIENT_URL, ENVIRONMENT, PORT
from app.database import Base, SessionLocal, engine
from app.realtime.socket_server import sio
from app.services import password_reset_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger("apscheduler").setLevel(logging.INFO)
logging.getLogger("socketio").setLevel(logging.WARNING)
logging.getLogger("engineio").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def purge_reset_tokens_task():
    """Nightly cleanup of expired or used password reset tokens."""
    db = SessionLocal()
    try:
        count = password_reset_service.purge_stale_tokens(db)
        logger.info(f"Purged {count} stale password reset tokens")
    except Exception as e:
        logger.error(f"Password reset token cleanup failed: {e}", exc_info=True)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.critical(f"Database connection failed: {e}")
        sys.exit(1)
    logger.info("Database connected successfully")

    scheduler.add_job(
        purge_reset_tokens_task,
        trigger=CronTrigger(hour=0, minute=0),
        id="purge_reset_tokens_job",
        name="Purge stale password reset tokens",
        replace_existing=True,
    )
    scheduler.start()

    yield

    scheduler.shutdown()


app = FastAPI(
    title="Workflow Management API",
    description="Tasks, chat, announcements and notifications for teams.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    content = {"error": "Internal server error"}
    if ENVIRONMENT != "production":
        content["debug"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.include_router(api_router, prefix="/api")


@app.get("/")
def read_root():
    return {"message": "Workflow Management API is running. Visit /docs for API documentation."}


# Socket.IO served at /socket.io, everything else goes to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)


if __name__ == "__main__":
    uvicorn.run("main:asgi_app", host="0.0.0.0", port=PORT)
