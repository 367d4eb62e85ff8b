from contextlib import asynccontextmanager
from fastapi import FastAPI
from .logging import setup_logging
from .config import settings
from .api.routes import router as api_router
from .jobs.scheduler import schedule_jobs, shutdown_scheduler

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        schedule_jobs()
    yield
    shutdown_scheduler()

app = FastAPI(title="teamsum", lifespan=lifespan)
app.include_router(api_router)
