"""Structured error responses: every error renders as
{name, message, action, status_code}.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("sessionauth")


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    name = "InternalServerError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Um erro interno não esperado aconteceu."
    default_action = "Entre em contato com o suporte."

    def __init__(self, message: str | None = None, *, action: str | None = None) -> None:
        self.message = message or self.default_message
        self.action = action or self.default_action
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "message": self.message,
            "action": self.action,
            "status_code": self.status_code,
        }


class InternalServerError(AppError):
    pass


class ValidationError(AppError):
    name = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Um erro de validação ocorreu."
    default_action = "Ajuste os dados enviados e tente novamente."


class NotFoundError(AppError):
    name = "NotFoundError"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Não foi possível encontrar este recurso no sistema."
    default_action = "Verifique se os parâmetros enviados na consulta estão certos."


class UnauthorizedError(AppError):
    """No active session.

    Unknown and expired tokens raise the same error with the same body.
    """

    name = "UnauthorizedError"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Usuário não possui sessão ativa."
    default_action = "Verifique se este usuário está logado e tente novamente."


def internal_error_response(request: Request) -> JSONResponse:
    """Log the exception being handled and render the 500 body."""
    request_id = getattr(request.state, "request_id", None)
    logger.exception("unhandled error request_id=%s", request_id)
    err = InternalServerError()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


_HTTP_ERROR_NAMES = {
    400: "ValidationError",
    401: "UnauthorizedError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
}


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "name": _HTTP_ERROR_NAMES.get(exc.status_code, "HTTPError"),
                "message": str(exc.detail),
                "action": "Verifique o método e o endereço da requisição.",
                "status_code": exc.status_code,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg") if errors else None
        if errors and errors[0].get("loc"):
            field = ".".join(str(part) for part in errors[0]["loc"] if part != "body")
            if field:
                message = f"{field}: {message}"
        err = ValidationError(message)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    # Last resort for errors raised outside RequestIDMiddleware; everything
    # below it is turned into a 500 there, with the request ID attached.
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        return internal_error_response(request)
