import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import API_PREFIX
from .db import create_schema, dispose_engine
from .exceptions import EngineError, ProblemDetail, problem_for
from .routers import matches, tournaments
from .utils.sentry import init_sentry

logger = logging.getLogger(__name__)

init_sentry()


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables are created on startup; an existing schema is left as is.
    await create_schema()
    logger.info("Database schema ready")
    yield
    await dispose_engine()


# -----------------------------------------------------------------------------
# FastAPI app
# -----------------------------------------------------------------------------
app = FastAPI(
    title="Matchcore API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


@app.get("/healthz", tags=["health"])  # Unprefixed for reverse proxy / uptime checks
def root_healthz():
    return {"status": "ok"}


# -----------------------------------------------------------------------------
# Error handling
# -----------------------------------------------------------------------------
@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    problem = problem_for(exc)
    problem.instance = str(request.url.path)
    return _problem_response(problem)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg") if errors else "invalid request"
    return _problem_response(
        ProblemDetail(
            title="Invalid input",
            detail=detail,
            status=422,
            code="validation_error",
            instance=str(request.url.path),
        )
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _problem_response(
        ProblemDetail(
            title=detail,
            detail=detail,
            status=exc.status_code,
            code=f"http_{exc.status_code}",
        )
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    return _problem_response(
        ProblemDetail(
            title="Internal Server Error",
            status=500,
            detail=str(exc),
            code="internal_server_error",
        )
    )


# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
api_router = APIRouter(prefix=API_PREFIX)


@api_router.get("/healthz", tags=["health"])
def api_healthz():
    return {"status": "ok"}


api_router.include_router(tournaments.router)
api_router.include_router(matches.router)
app.include_router(api_router)
