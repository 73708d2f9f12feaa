import logging
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routers import facilities, reservations
from .schemas import ErrorResponse
from .utils.request_id import request_id_middleware

logger = logging.getLogger(__name__)

app = FastAPI(title="Reservo API")
app.middleware("http")(request_id_middleware)


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ErrorResponse(error=HTTPStatus(status_code).phrase, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Request validation failed"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("unhandled storage error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(facilities.router)
app.include_router(reservations.router)
