import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import admin, auth as auth_api, tenant
from .auth import ensure_default_admin
from .db import engine, init_db
from .errors import RentError, UnexpectedError

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "info").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="RentMS API")

# CORS origins come from env `CORS_ALLOWED` (comma separated)
allowed = os.getenv("CORS_ALLOWED", "").split(",") if os.getenv("CORS_ALLOWED") else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth_api.router)
app.include_router(admin.router)
app.include_router(tenant.router)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(RentError)
async def rent_error_handler(request: Request, exc: RentError):
    return _failure(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _failure(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if exc.status_code != 404 or exc.detail != "Not Found" else "Route not found"
    response = _failure(exc.status_code, str(message))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    err = UnexpectedError("Database error")
    return _failure(err.status_code, err.message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = UnexpectedError(str(exc) or "Internal Server Error")
    return _failure(err.status_code, err.message)


@app.on_event("startup")
def on_startup():
    init_db()
    # Ensure a default admin exists for initial setup (password from env only)
    with Session(engine) as session:
        ensure_default_admin(session)


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "message": "RentMS API Running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
