import logging
from contextlib import asynccontextmanager

import uvicorn

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from routers import auth, users, leave_requests, notifications
from config import settings
from cron_jobs import scheduler
from db import get_database, ensure_indexes
from exceptions import AppException, app_exception_handler
from utils.mail_utils import get_mailer

PROD_MODE = settings.PRODUCTION_MODE

logging.basicConfig(
    level=logging.INFO,  # Set the logging level to INFO
    format='%(asctime)s - %(levelname)s - %(message)s',  # Log format
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(get_database())
    if settings.ENABLE_SCHEDULER:
        # Start cron job scheduler on the running event loop
        scheduler.start()
        logger.info("Reminder scheduler started")
    yield
    if scheduler.running:
        scheduler.shutdown(wait=False)
    await get_mailer().drain()


app = FastAPI(title=settings.PROJECT_TITLE, lifespan=lifespan)

app.add_exception_handler(AppException, app_exception_handler)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(leave_requests.router, prefix="/api/leaverequests", tags=["leave_requests"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_URL.rstrip("/")],
    allow_origin_regex=r"https://([a-z0-9-]+--)?leavenest\.netlify\.app",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.get("/")
def index():
    return {"message": "Leave management service is running"}


if __name__ == "__main__":
    if PROD_MODE == True:
    # Run Uvicorn without reload in production
        uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT, reload=False)

    else:
        # Run Uvicorn with reload=True in development mode
        uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT, reload=True)
