# emetals/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# ---------------------------------------------
# LOAD ENVIRONMENT VARIABLES
# ---------------------------------------------
load_dotenv()

from emetals.config import settings
from emetals.deps import get_flow_store
from emetals.logging_config import get_logger
from emetals.middleware import request_id_middleware, route_guard_middleware

# ---------------------------------------------
# IMPORT ROUTERS
# ---------------------------------------------
from emetals.routers import (
    account,
    flows,
    health,
    pages,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app_started", auth_base_url=settings.AUTH_BASE_URL)
    yield
    # Pending countdowns and redirects belong to this loop
    get_flow_store().close_all()
    logger.info("app_stopped")


# ---------------------------------------------
# APP INIT
# ---------------------------------------------
app = FastAPI(
    title="Emetals Auth API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------
# MIDDLEWARE (last registered runs first)
# ---------------------------------------------
app.middleware("http")(route_guard_middleware)
app.middleware("http")(request_id_middleware)

# ---------------------------------------------
# CORS
# ---------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------
# ROUTERS
# ---------------------------------------------

# Health
app.include_router(health.router, prefix="/health", tags=["Health"])

# Auth flows
app.include_router(flows.router, prefix="/api/v1/flows", tags=["Flows"])

# Password strength + session
app.include_router(account.router, prefix="/api/v1", tags=["Account"])

# Protected pages
app.include_router(pages.router, tags=["Pages"])


# ---------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------
@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} auth service is running"}
