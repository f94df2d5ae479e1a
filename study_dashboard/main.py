"""FastAPI entrypoint for the Study Dashboard."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from study_dashboard.auth_utils import load_session_secret
from study_dashboard.config import settings
from study_dashboard.controller import ControllerRegistry
from study_dashboard.database import create_db_and_tables, engine
from study_dashboard.logging_config import get_logger, log_with_context, setup_logging
from study_dashboard.routers import admin as admin_router_module
from study_dashboard.routers import auth as auth_router_module
from study_dashboard.routers import exam as exam_router_module
from study_dashboard.routers import modules as modules_router_module
from study_dashboard.routers import profile as profile_router_module
from study_dashboard.routers import views as views_router_module
from study_dashboard.services.content_service import ContentService
from study_dashboard.storage import APP_NAMESPACE, KeyValueStore
from study_dashboard.templating import STATIC_DIR

setup_logging(settings.LOG_LEVEL)
logger = get_logger("http")

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

# The cookie secret may live in the storage table, so it must exist first
create_db_and_tables()
session_secret = settings.SESSION_SECRET_KEY or load_session_secret(KeyValueStore(engine, APP_NAMESPACE))

# One controller per browser client; the content service is shared
app.state.registry = ControllerRegistry(engine, max_clients=settings.MAX_ACTIVE_CLIENTS)
app.state.content_service = ContentService.from_settings(settings)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed form posts go back to the page; API callers get JSON."""
    log_with_context(logger, "WARNING", f"Invalid request to {request.url.path}",
                     extra_data={"errors": exc.errors()})
    accept_header = request.headers.get("accept", "")
    if "text/html" in accept_header or request.method == "POST":
        return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions, especially 403 Forbidden for HTML requests."""
    # A 403 on a page or form post sends the user back to their view
    if exc.status_code == 403:
        log_with_context(logger, "WARNING", f"Forbidden: {request.method} {request.url.path}")
        accept_header = request.headers.get("accept", "")
        if "text/html" in accept_header or request.method in ("GET", "POST"):
            return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    # For 303 redirects (like login redirects), let them pass through
    if exc.status_code == 303 and exc.headers and exc.headers.get("Location"):
        return RedirectResponse(url=exc.headers["Location"], status_code=status.HTTP_303_SEE_OTHER)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Session middleware carries the client id that selects the store namespace
app.add_middleware(SessionMiddleware, secret_key=session_secret)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# Routers
app.include_router(views_router_module.router, tags=["views"])
app.include_router(auth_router_module.router, prefix="/auth", tags=["auth"])
app.include_router(profile_router_module.router, prefix="/profile", tags=["profile"])
app.include_router(exam_router_module.router, prefix="/exam", tags=["exam"])
app.include_router(modules_router_module.router, prefix="/modules", tags=["modules"])
app.include_router(admin_router_module.router, prefix="/admin", tags=["admin"])


@app.on_event("startup")
def on_startup():
    """Report configuration gaps; the schema exists since import."""
    if not settings.content_service_enabled:
        log_with_context(logger, "WARNING", "GEMINI_API_KEY is not set; exams and summaries will fail")
