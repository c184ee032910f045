from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import logging

from cmms.api import auth, companies, assets, parts, preventive_maintenance, work_orders
from cmms.database import engine
from cmms.models import Base
from cmms.config import settings
from cmms.services.pm_scheduler import start_scheduler, shutdown_scheduler
from cmms.utils.rate_limiter import limiter, rate_limit_exceeded_handler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.pm_sweep_enabled:
        start_scheduler()
    else:
        logger.info("PM sweep disabled")
    yield
    shutdown_scheduler()


app = FastAPI(title="CMMS API", version="1.0.0", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(companies.router, prefix="/api", tags=["Companies"])
app.include_router(assets.router, prefix="/api", tags=["Assets"])
app.include_router(parts.router, prefix="/api", tags=["Parts"])
app.include_router(preventive_maintenance.router, prefix="/api", tags=["Preventive Maintenance"])
app.include_router(work_orders.router, prefix="/api", tags=["Work Orders"])


@app.get("/")
async def root():
    return {"message": "CMMS API is running"}


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "pm_sweep": settings.pm_sweep_enabled
        }
    }
