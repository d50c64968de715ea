import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from servimatch.config import settings
from servimatch.database import engine
from servimatch.errors import ServiceError
from servimatch.middleware import RequestTimeoutMiddleware
from servimatch.routes import appointments, auth, availability, earnings, requests, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("servimatch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up (env=%s)", settings.APP_ENV)
    yield
    await engine.dispose()
    logger.info("Application shut down")


app = FastAPI(title="Servimatch API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last, so it wraps CORS and every route
app.add_middleware(RequestTimeoutMiddleware)


# ----------------------------------
#  Error mapping
# ----------------------------------
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("Service error on %s: %s", request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error for %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Conflicting or invalid data"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = f"Internal server error: {exc}" if settings.is_dev else "Internal server error"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})


app.include_router(auth.router,         prefix="/auth",         tags=["Auth"])
app.include_router(users.router,        prefix="/users",        tags=["Users"])
app.include_router(requests.router,     prefix="/requests",     tags=["Service Requests"])
app.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
app.include_router(earnings.router,     prefix="/earnings",     tags=["Earnings"])
app.include_router(availability.router, prefix="/availability", tags=["Availability"])


@app.get("/health")
async def health():
    return {"status": "ok"}
