import logging
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import configure_logging, settings
from .db import init_db
from .seed import ensure_default_admin, ensure_default_coordinator, ensure_demo_data
from .services.store import StoreError
from .routers import auth, users, dashboard
from .routers import careers, courses, prerequisites, students, academic_statuses, enrollments


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    if settings.is_production:
        ensure_default_admin(force_password_reset=True)
        ensure_default_coordinator()
    else:
        ensure_demo_data()
    logger.info("%s iniciada (entorno=%s)", settings.app_name, settings.environment)
    yield


app = FastAPI(title="Gestión Académica API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(careers.router)
app.include_router(courses.router)
app.include_router(prerequisites.router)
app.include_router(students.router)
app.include_router(academic_statuses.router)
app.include_router(enrollments.router)
app.include_router(dashboard.router)


@app.get("/")
def root():
    return {"status": "ok", "service": "Gestión Académica API"}
