"""
EduTrack Access Control API

Main FastAPI application exposing the authorization decision procedure
and the dashboard metrics guarded by it.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from api import users_router, authz_router, dashboard_router, audit_router
from rbac import AccessDenied, get_permission_matrix
from api.routes import status_for

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# --------------- Lifespan ---------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler – validate the permission matrix and initialise DB on startup."""
    # Fails fast on an incomplete permission table
    get_permission_matrix()
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized.")
    yield


# --------------- FastAPI app ---------------

app = FastAPI(
    title="EduTrack Access Control API",
    description="""
Role-based access control for the EduTrack school management system.

## Roles
STUDENT, TEACHER, PARENT, PRINCIPAL, CLERK, ADMIN - exactly one per user.

### Authorization Rules
- **Permission matrix**: every (role, resource, action) is explicitly granted or denied
- **Tenant isolation**: users only reach data of their own school (ADMIN excepted)
- **Ownership**: teachers reach their own classes, students their active
  enrollments and own records, parents their children
- **Principals and clerks** act school-wide within their school

### Denials
Every denial carries a reason code. `OWNERSHIP_CHECK_FAILED` (503) means the
relationship could not be verified and the request may be retried.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    """Denials raised through ``enforce``."""
    return JSONResponse(
        status_code=status_for(exc.reason),
        content={"detail": {"error": "Forbidden", "reason": exc.reason.value}},
    )


# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


# Include routers
app.include_router(users_router)
app.include_router(authz_router)
app.include_router(dashboard_router)
app.include_router(audit_router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API health check."""
    return {
        "status": "online",
        "service": "EduTrack Access Control API",
        "version": "1.0.0"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
