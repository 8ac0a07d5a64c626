import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from salesdesk import config
from salesdesk.database import init_db
from salesdesk.errors import SalesDeskError
from salesdesk.routers import activities as activities_router
from salesdesk.routers import analytics as analytics_router
from salesdesk.routers import audit as audit_router
from salesdesk.routers import auth as auth_router
from salesdesk.routers import clients as clients_router
from salesdesk.routers import dashboard as dashboard_router
from salesdesk.routers import reports as reports_router
from salesdesk.routers import users as users_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(title="SalesDesk", lifespan=lifespan)

app.add_middleware(
    SessionMiddleware,
    secret_key=config.SESSION_SECRET,
    session_cookie=config.SESSION_COOKIE,
    max_age=config.SESSION_MAX_AGE,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    auth_router.router,
    users_router.router,
    clients_router.router,
    activities_router.router,
    reports_router.router,
    audit_router.router,
    dashboard_router.router,
    analytics_router.router,
):
    app.include_router(router, prefix="/api")


# --- Error Handlers ---
@app.exception_handler(SalesDeskError)
async def salesdesk_error_handler(request: Request, exc: SalesDeskError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "form")) or "body"
    message = f"Field '{field}' is required" if error["type"] == "missing" else f"Field '{field}': {error['msg']}"
    return JSONResponse(status_code=400, content={"error": message})


# --- API Endpoints ---
@app.get("/")
def read_root():
    return {"status": "SalesDesk is running!"}
