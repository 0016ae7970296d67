# Standard library imports
from contextlib import asynccontextmanager
from typing import Optional
import os

# Third-party imports
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

# Local application imports
from goal_tracker.config import DEFAULT_JWT_SECRET_KEY, Settings, logger
from goal_tracker.errors import APIError
from goal_tracker.models import create_database_engine, create_db_and_tables
from goal_tracker.routers import goals, health, users


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


async def api_error_handler(request: Request, exc: APIError):
    """Render application errors as ``{success: false, message}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return error_response(exc.status_code, exc.message, exc.headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400 like missing fields."""
    errors = exc.errors()
    message = "Invalid request data"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request data: {location} {errors[0].get('msg', '')}".strip()
    return error_response(400, message)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.
    Connects to the database on startup and disposes the engine on exit.
    """
    # Startup
    settings: Settings = app.state.settings
    database_engine = create_database_engine(settings.DATABASE_URL)
    create_db_and_tables(database_engine)
    app.state.database_engine = database_engine
    logger.info("Application started with connection to the database")

    yield

    # Shutdown
    logger.info("Shutting down, closing connection to database")
    database_engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = Settings.from_env()
    if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET_KEY:
        logger.warning("JWT_SECRET_KEY is not set, using the development default")

    app = FastAPI(lifespan=lifespan)
    app.title = "Goal Tracker API"
    app.version = "1.0.0"
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "POST", "DELETE"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )

    # Error handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Include routers
    app.include_router(users.router)
    app.include_router(goals.router)
    app.include_router(health.router)

    @app.get("/",
             tags=["Root"],
             summary="Welcome Endpoint",
             description="Returns a welcome message including the application title and version.")
    def root():
        return {"message": f"Welcome to {app.title} v{app.version}"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
