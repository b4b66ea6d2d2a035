"""
FastAPI application factory.

Routes stay thin: every expected failure is a BookingEngineError and is
turned into JSON here, so handlers never build error responses themselves.
"""
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from agenda.api.routes import panel, public
from agenda.config import settings
from agenda.engine import BookingEngine
from agenda.errors import (
    MSG_INTERNAL_ERROR,
    STATUS_BAD_REQUEST,
    STATUS_INTERNAL_ERROR,
    BookingEngineError,
    ValidationError,
)
from agenda.logging_context import get_request_logger, request_context

logger = get_request_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _first_error_message(errors) -> str:
    if not errors:
        return "Invalid request."
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg


def _validation_response(errors) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BAD_REQUEST,
        content=ValidationError(_first_error_message(errors)).to_dict(),
    )


def create_app(engine: Optional[BookingEngine] = None) -> FastAPI:
    app = FastAPI(title="Agenda booking engine", version="0.1.0")
    app.state.engine = engine or BookingEngine()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"REQ-{uuid.uuid4().hex[:12]}"
        with request_context(request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(BookingEngineError)
    async def engine_error_handler(request: Request, exc: BookingEngineError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _validation_response(exc.errors())

    @app.exception_handler(PydanticValidationError)
    async def model_validation_handler(request: Request, exc: PydanticValidationError):
        return _validation_response(exc.errors())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=STATUS_INTERNAL_ERROR,
            content={"error": MSG_INTERNAL_ERROR, "code": "INTERNAL_ERROR", "statusCode": STATUS_INTERNAL_ERROR},
        )

    @app.get("/health")
    def health():
        return {"status": "ok", "service": settings.service_name}

    app.include_router(public.router, prefix="/agenda", tags=["agenda"])
    app.include_router(panel.router, prefix="/panel", tags=["panel"])
    return app
