"""
Gestionnaires d'exceptions.
- ZeroOrderError non interceptée par une vue: JSON {"error": message}
  (503 si la fonctionnalité n'est pas configurée, 400 sinon).
- HTTPException: body JSON FastAPI standard.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from cardcheck.zero_order.errors import NotConfigured, ZeroOrderError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ZeroOrderError)
    async def zero_order_error(request: Request, exc: ZeroOrderError):
        status = 503 if isinstance(exc, NotConfigured) else 400
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.__class__.__name__, exc.message)
        return JSONResponse(status_code=status, content={"error": exc.message})

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
